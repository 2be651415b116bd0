# backend/autora/api/v1/admin_cars.py
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File
from sqlalchemy.orm import Session
from typing import Optional
import uuid
import logging

from ...core.auth import require_admin
from ...core.database import get_db
from ...core.storage import (
    CarImageStorage,
    StorageError,
    get_optional_storage,
    get_storage,
    is_image_data_url,
)
from ...agents.vision_agent.extractor import CarImageExtractor, ImageExtractionError, get_extractor
from ...models.car_model import Car
from ...models.user_model import User
from ...schemas.car_schema import AddCarRequest, CarStatusUpdate
from ...schemas.common_schema import ActionResult, ok
from ...utils.helpers import serialize_car_data

router = APIRouter()


def read_image_upload(file: UploadFile) -> bytes:
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are supported")
    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return content


def extract_car_details(file: UploadFile, extractor: CarImageExtractor) -> dict:
    """Shared by the admin form and the public image search"""
    content = read_image_upload(file)
    try:
        details = extractor.extract(content, file.content_type)
    except ImageExtractionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return details.model_dump()


@router.post("/process-image", response_model=ActionResult)
def process_car_image(
    file: UploadFile = File(..., description="Photo of the car"),
    admin: User = Depends(require_admin),
    extractor: CarImageExtractor = Depends(get_extractor),
):
    """Extract draft listing fields from a car photo with AI"""
    logging.info(f"Admin {admin.id} extracting details from {file.filename}")
    return ok(extract_car_details(file, extractor))


@router.post("/", response_model=ActionResult, status_code=201)
def add_car(
    request: AddCarRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    storage: CarImageStorage = Depends(get_storage),
):
    """
    Upload the car's images one by one, then insert the car.
    The first failed upload aborts the action; earlier uploads are kept.
    """
    car_id = str(uuid.uuid4())
    image_urls = []

    for index, data_url in enumerate(request.images):
        if not is_image_data_url(data_url):
            continue
        try:
            image_urls.append(storage.upload_data_url(car_id, index, data_url))
        except StorageError as e:
            logging.error(f"Image upload {index} for car {car_id} failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))

    if not image_urls:
        raise HTTPException(status_code=400, detail="No valid images were uploaded")

    db_car = Car(id=car_id, images=image_urls, **request.car_data.model_dump())
    db.add(db_car)

    try:
        db.commit()
        db.refresh(db_car)
        logging.info(f"Car {car_id} created by admin {admin.id} with {len(image_urls)} image(s)")
        return ok(serialize_car_data(db_car), "Car added successfully")
    except Exception as e:
        logging.error(f"Failed to create car: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")


@router.get("/", response_model=ActionResult)
def list_cars(
    search: Optional[str] = Query(None, description="Search by brand, model or color"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Get all cars, newest first"""
    query = db.query(Car)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Car.brand.ilike(search_term)) |
            (Car.model.ilike(search_term)) |
            (Car.color.ilike(search_term))
        )

    cars = query.order_by(Car.created_at.desc()).all()
    return ok([serialize_car_data(car) for car in cars])


@router.delete("/{car_id}", response_model=ActionResult)
def delete_car(
    car_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    storage: Optional[CarImageStorage] = Depends(get_optional_storage),
):
    """Delete a car, then make a best-effort pass over its stored images"""
    db_car = db.query(Car).filter(Car.id == car_id).first()

    if not db_car:
        raise HTTPException(status_code=404, detail="Car not found")

    image_urls = list(db_car.images or [])

    try:
        db.delete(db_car)
        db.commit()
        logging.info(f"Car {car_id} deleted by admin {admin.id}")
    except Exception as e:
        logging.error(f"Failed to delete car: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")

    if storage is None:
        logging.error(f"Storage unavailable, {len(image_urls)} image(s) of car {car_id} left behind")
    else:
        paths = [p for p in (storage.path_from_url(url) for url in image_urls) if p]
        try:
            storage.remove(paths)
        except StorageError as e:
            logging.error(f"Error deleting images of car {car_id}: {e}")

    return ok(message="Car deleted successfully")


@router.patch("/{car_id}", response_model=ActionResult)
def update_car_status(
    car_id: str,
    update: CarStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Change a car's status and/or featured flag"""
    db_car = db.query(Car).filter(Car.id == car_id).first()

    if not db_car:
        raise HTTPException(status_code=404, detail="Car not found")

    update_data = update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_car, field, value)

    try:
        db.commit()
        db.refresh(db_car)
        logging.info(f"Car {car_id} updated: {update_data}")
        return ok(serialize_car_data(db_car), "Car updated successfully")
    except Exception as e:
        logging.error(f"Failed to update car: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {e}")
