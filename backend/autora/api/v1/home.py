from fastapi import APIRouter, Depends, Query, UploadFile, File
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.rate_limit import image_search_rate_limit
from ...agents.vision_agent.extractor import CarImageExtractor, get_extractor
from ...models.car_model import Car
from ...models.enums import CarStatus
from ...schemas.common_schema import ActionResult, ok
from ...utils.helpers import serialize_car_data
from .admin_cars import extract_car_details

router = APIRouter()


@router.get("/featured", response_model=ActionResult)
def get_featured_cars(
    limit: int = Query(3, ge=1, le=24),
    db: Session = Depends(get_db),
):
    """Featured, available cars for the homepage"""
    cars = (
        db.query(Car)
        .filter(Car.featured.is_(True), Car.status == CarStatus.AVAILABLE)
        .order_by(Car.created_at.desc())
        .limit(limit)
        .all()
    )
    return ok([serialize_car_data(car) for car in cars])


@router.post("/image-search", response_model=ActionResult, dependencies=[Depends(image_search_rate_limit)])
def process_image_search(
    file: UploadFile = File(..., description="Photo of a car to search for"),
    extractor: CarImageExtractor = Depends(get_extractor),
):
    """
    Identify a car from a photo so the listing search can be prefilled.
    Rate-limited per client address.
    """
    return ok(extract_car_details(file, extractor))
