import uuid

from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, JSON, DateTime, Enum
from sqlalchemy.sql import func
from ..core.database import Base
from .enums import CarStatus

class Car(Base):
    __tablename__ = "cars"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    brand = Column(String, nullable=False, index=True)
    model = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False, index=True)
    mileage = Column(String, nullable=False)  # "18 kmpl", "450 km/charge" or "N/A"
    color = Column(String, nullable=False)
    fuel_type = Column(String, nullable=False, index=True)
    transmission = Column(String, nullable=False)
    body_type = Column(String, nullable=False, index=True)
    seats = Column(Integer)
    description = Column(Text, nullable=False, default="")
    status = Column(Enum(CarStatus), nullable=False, default=CarStatus.AVAILABLE, index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    images = Column(JSON, nullable=False, default=list)  # Public URLs, display order
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
