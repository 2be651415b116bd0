# backend/autora/api/v1/cars.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
import math
import logging

from ...core.auth import get_current_user, get_optional_user
from ...core.database import get_db
from ...models.booking_model import TestDriveBooking, UserSavedCar
from ...models.car_model import Car
from ...models.enums import ACTIVE_BOOKING_STATUSES, CarStatus
from ...models.user_model import User
from ...schemas.car_schema import CarFilters, Pagination, PriceRange
from ...schemas.common_schema import ActionResult, ok
from ...utils.dealership import get_or_create_dealership
from ...utils.helpers import serialize_booking, serialize_car_data, serialize_dealership

router = APIRouter()

SORT_OPTIONS = {
    "newest": Car.created_at.desc(),
    "priceAsc": Car.price.asc(),
    "priceDesc": Car.price.desc(),
}


def saved_car_ids(db: Session, user: Optional[User]) -> set:
    if user is None:
        return set()
    rows = db.query(UserSavedCar.car_id).filter(UserSavedCar.user_id == user.id).all()
    return {car_id for (car_id,) in rows}


def _distinct(db: Session, column) -> list:
    rows = db.query(column).filter(Car.status == CarStatus.AVAILABLE).distinct().all()
    return sorted(value for (value,) in rows if value)


@router.get("/filters", response_model=ActionResult)
def get_car_filters(db: Session = Depends(get_db)):
    """Values the listing filter sidebar can offer"""
    min_price, max_price = db.query(func.min(Car.price), func.max(Car.price)).filter(
        Car.status == CarStatus.AVAILABLE
    ).one()

    filters = CarFilters(
        brands=_distinct(db, Car.brand),
        body_types=_distinct(db, Car.body_type),
        fuel_types=_distinct(db, Car.fuel_type),
        transmissions=_distinct(db, Car.transmission),
        price_range=PriceRange(
            min=float(min_price) if min_price is not None else 0,
            max=float(max_price) if max_price is not None else 100000,
        ),
    )
    return ok(filters.model_dump())


@router.get("/", response_model=ActionResult)
def get_cars(
    search: Optional[str] = Query(None, description="Search brand, model or description"),
    brand: Optional[str] = None,
    body_type: Optional[str] = None,
    fuel_type: Optional[str] = None,
    transmission: Optional[str] = None,
    min_price: float = Query(0, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: str = Query("newest", description="newest, priceAsc or priceDesc"),
    page: int = Query(1, ge=1),
    limit: int = Query(6, ge=1, le=100),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Browse available cars with filters, sorting and pagination"""
    query = db.query(Car).filter(Car.status == CarStatus.AVAILABLE)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Car.brand.ilike(search_term)) |
            (Car.model.ilike(search_term)) |
            (Car.description.ilike(search_term))
        )

    if brand:
        query = query.filter(func.lower(Car.brand) == brand.lower())
    if body_type:
        query = query.filter(func.lower(Car.body_type) == body_type.lower())
    if fuel_type:
        query = query.filter(func.lower(Car.fuel_type) == fuel_type.lower())
    if transmission:
        query = query.filter(func.lower(Car.transmission) == transmission.lower())

    query = query.filter(Car.price >= min_price)
    if max_price is not None:
        query = query.filter(Car.price <= max_price)

    total = query.count()
    order = SORT_OPTIONS.get(sort_by, SORT_OPTIONS["newest"])
    cars = query.order_by(order).offset((page - 1) * limit).limit(limit).all()

    wishlist = saved_car_ids(db, user)

    return ok({
        "cars": [serialize_car_data(car, car.id in wishlist) for car in cars],
        "pagination": Pagination(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit),
        ).model_dump(),
    })


@router.get("/saved", response_model=ActionResult)
def get_saved_cars(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Get the caller's wishlist, most recently saved first"""
    saved = (
        db.query(UserSavedCar)
        .filter(UserSavedCar.user_id == user.id)
        .order_by(UserSavedCar.saved_at.desc())
        .all()
    )
    return ok([serialize_car_data(entry.car, True) for entry in saved])


@router.get("/{car_id}", response_model=ActionResult)
def get_car_by_id(
    car_id: str,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Car details plus what the test drive form needs"""
    car = db.query(Car).filter(Car.id == car_id).first()

    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    wishlisted = False
    user_test_drive = None

    if user is not None:
        wishlisted = car.id in saved_car_ids(db, user)
        existing = (
            db.query(TestDriveBooking)
            .filter(
                TestDriveBooking.car_id == car.id,
                TestDriveBooking.user_id == user.id,
                TestDriveBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
            .order_by(TestDriveBooking.created_at.desc())
            .first()
        )
        if existing:
            user_test_drive = serialize_booking(existing, include_car=False)

    dealership = get_or_create_dealership(db)

    data = serialize_car_data(car, wishlisted)
    data["test_drive_info"] = {
        "user_test_drive": user_test_drive,
        "dealership": serialize_dealership(dealership),
    }
    return ok(data)


@router.post("/{car_id}/save", response_model=ActionResult)
def toggle_saved_car(
    car_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Add the car to the caller's wishlist, or remove it if already there"""
    car = db.query(Car).filter(Car.id == car_id).first()
    if not car:
        raise HTTPException(status_code=404, detail="Car not found")

    entry = db.query(UserSavedCar).filter(
        UserSavedCar.user_id == user.id,
        UserSavedCar.car_id == car_id,
    ).first()

    try:
        if entry:
            db.delete(entry)
            saved, message = False, "Car removed from favorites"
        else:
            db.add(UserSavedCar(user_id=user.id, car_id=car_id))
            saved, message = True, "Car added to favorites"
        db.commit()
    except Exception as e:
        logging.error(f"Failed to toggle saved car: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")

    logging.info(f"User {user.id} {'saved' if saved else 'unsaved'} car {car_id}")
    return ok({"saved": saved}, message)
