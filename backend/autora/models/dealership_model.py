import uuid

from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..core.database import Base
from .enums import DayOfWeek

class DealershipInfo(Base):
    __tablename__ = "dealership_info"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, default="Autora Motors")
    address = Column(String, nullable=False, default="69 Car Street, Autoville, CA 69420")
    phone = Column(String, nullable=False, default="+1 (555) 123-4567")
    email = Column(String, nullable=False, default="contact@autora.com")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    working_hours = relationship(
        "WorkingHour",
        back_populates="dealership",
        cascade="all, delete-orphan",
    )


class WorkingHour(Base):
    __tablename__ = "working_hours"
    __table_args__ = (UniqueConstraint("dealership_id", "day_of_week", name="uq_dealership_day"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dealership_id = Column(String(36), ForeignKey("dealership_info.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Enum(DayOfWeek), nullable=False)
    open_time = Column(String(5), nullable=False)  # "HH:MM"
    close_time = Column(String(5), nullable=False)
    is_open = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    dealership = relationship("DealershipInfo", back_populates="working_hours")
