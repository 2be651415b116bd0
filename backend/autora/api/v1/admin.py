# backend/autora/api/v1/admin.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
import logging

from ...core.auth import get_current_user, require_admin
from ...core.database import get_db
from ...models.booking_model import TestDriveBooking
from ...models.car_model import Car
from ...models.enums import BookingStatus, CarStatus, UserRole
from ...models.user_model import User
from ...schemas.booking_schema import BookingStatusUpdate
from ...schemas.common_schema import ActionResult, ok
from ...schemas.user_schema import User as UserSchema, UserSummary
from ...utils.helpers import serialize_booking
from ...workflow.tasks import queue_booking_email

router = APIRouter()


def is_valid_booking_status(value) -> bool:
    return value in {status.value for status in BookingStatus}


def conversion_rate(sold_after_test_drive: int, completed_test_drives: int) -> float:
    """Share of completed test drives whose car was sold, as a percentage"""
    if completed_test_drives <= 0:
        return 0
    return round(sold_after_test_drive / completed_test_drives * 100, 2)


@router.get("/check", response_model=ActionResult)
def check_admin(user: User = Depends(get_current_user)):
    """Tell the admin layout whether the caller may enter"""
    if user.role != UserRole.ADMIN:
        return ok({"authorized": False, "reason": "not-admin"})
    return ok({"authorized": True, "user": UserSchema.model_validate(user).model_dump(mode="json")})


@router.get("/test-drives", response_model=ActionResult)
def get_admin_test_drives(
    search: Optional[str] = Query(None, description="Search by car brand/model or user name/email"),
    status: Optional[str] = Query(None, description="Exact status, or ALL"),
    exclude_statuses: List[BookingStatus] = Query([], description="Statuses to leave out"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Get all test drive bookings for the back office"""
    query = (
        db.query(TestDriveBooking)
        .join(Car, TestDriveBooking.car_id == Car.id)
        .join(User, TestDriveBooking.user_id == User.id)
        .options(joinedload(TestDriveBooking.car), joinedload(TestDriveBooking.user))
    )

    if status and status != "ALL":
        if not is_valid_booking_status(status):
            raise HTTPException(status_code=400, detail="Invalid booking status")
        query = query.filter(TestDriveBooking.status == BookingStatus(status))

    if exclude_statuses:
        query = query.filter(TestDriveBooking.status.notin_(exclude_statuses))

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Car.brand.ilike(search_term)) |
            (Car.model.ilike(search_term)) |
            (User.name.ilike(search_term)) |
            (User.email.ilike(search_term))
        )

    bookings = query.order_by(
        TestDriveBooking.booking_date.desc(),
        TestDriveBooking.start_time.asc(),
    ).all()

    data = []
    for booking in bookings:
        item = serialize_booking(booking)
        item["user"] = UserSummary.model_validate(booking.user).model_dump()
        data.append(item)

    return ok(data, "Bookings fetched successfully")


@router.patch("/test-drives/{booking_id}", response_model=ActionResult)
def update_test_drive_status(
    booking_id: str,
    update: BookingStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Set a booking to any of the five statuses"""
    if not is_valid_booking_status(update.status):
        raise HTTPException(status_code=400, detail="Invalid booking status")

    booking = db.query(TestDriveBooking).filter(TestDriveBooking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    previous = booking.status
    booking.status = BookingStatus(update.status)

    try:
        db.commit()
        db.refresh(booking)
        logging.info(f"Booking {booking_id}: {previous.value} → {booking.status.value}")
    except Exception as e:
        logging.error(f"Failed to update booking status: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")

    if previous != booking.status:
        queue_booking_email(booking.id, "status_update")

    return ok(serialize_booking(booking), "Test drive status updated successfully")


@router.get("/dashboard", response_model=ActionResult)
def get_dashboard_data(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Inventory and test drive counters for the admin dashboard
    """
    cars = db.query(Car.id, Car.status, Car.featured).all()
    test_drives = db.query(TestDriveBooking.id, TestDriveBooking.status, TestDriveBooking.car_id).all()

    def count_cars(status):
        return sum(1 for car in cars if car.status == status)

    def count_drives(status):
        return sum(1 for td in test_drives if td.status == status)

    completed_car_ids = {td.car_id for td in test_drives if td.status == BookingStatus.COMPLETED}
    sold_after_test_drive = sum(
        1 for car in cars
        if car.status == CarStatus.SOLD and car.id in completed_car_ids
    )
    completed = count_drives(BookingStatus.COMPLETED)

    return ok({
        "cars": {
            "total": len(cars),
            "available": count_cars(CarStatus.AVAILABLE),
            "sold": count_cars(CarStatus.SOLD),
            "unavailable": count_cars(CarStatus.UNAVAILABLE),
            "featured": sum(1 for car in cars if car.featured),
        },
        "test_drives": {
            "total": len(test_drives),
            "pending": count_drives(BookingStatus.PENDING),
            "confirmed": count_drives(BookingStatus.CONFIRMED),
            "completed": completed,
            "cancelled": count_drives(BookingStatus.CANCELLED),
            "no_show": count_drives(BookingStatus.NO_SHOW),
            "conversion_rate": conversion_rate(sold_after_test_drive, completed),
        },
    })
