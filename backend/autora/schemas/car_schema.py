from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Union
from decimal import Decimal

from ..models.enums import CarStatus

class CarBase(BaseModel):
    brand: str = Field(..., min_length=1, description="Manufacturer")
    model: str = Field(..., min_length=1, description="Model name")
    year: int = Field(..., ge=1900, le=2100)
    price: Decimal = Field(..., ge=0, description="Price in INR")
    mileage: str = Field(..., description="Fuel efficiency, e.g. '18 kmpl'")
    color: str
    fuel_type: str
    transmission: str
    body_type: str
    seats: Optional[int] = Field(None, ge=1, le=20)
    description: str = ""

    @field_validator("mileage", mode="before")
    @classmethod
    def coerce_mileage(cls, value):
        # The admin form sends a number, the AI extraction a string
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return value

class CarCreate(CarBase):
    """Schema for the car fields of an add-car request"""
    status: CarStatus = CarStatus.AVAILABLE
    featured: bool = False

class AddCarRequest(BaseModel):
    car_data: CarCreate
    images: List[str] = Field(..., description="Images as data:image/<ext>;base64,... URLs")

class CarStatusUpdate(BaseModel):
    """Schema for the admin status/featured toggle; unset fields are left alone"""
    status: Optional[CarStatus] = None
    featured: Optional[bool] = None

class CarDetails(BaseModel):
    """
    Listing fields extracted from a photo by the vision model.
    Every key must be present in the answer but any value may be null,
    e.g. mileage for an electric car.
    """
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[Union[int, str]] = None
    color: Optional[str] = None
    price: Optional[Union[str, float, int]] = None
    mileage: Optional[Union[str, float, int]] = None
    seats: Optional[Union[str, int]] = None
    body_type: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[float] = None

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value):
        if value is None:
            return value
        return min(max(value, 0.0), 1.0)

class PriceRange(BaseModel):
    min: float
    max: float

class CarFilters(BaseModel):
    brands: List[str]
    body_types: List[str]
    fuel_types: List[str]
    transmissions: List[str]
    price_range: PriceRange

class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
