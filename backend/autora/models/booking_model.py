import uuid

from sqlalchemy import Column, String, Text, ForeignKey, Date, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, backref
from ..core.database import Base
from .enums import BookingStatus

class TestDriveBooking(Base):
    """
    A user's request to test drive one car in one time slot
    """
    __tablename__ = "test_drive_bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    car_id = Column(String(36), ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    car = relationship("Car", backref=backref("test_drive_bookings", cascade="all, delete-orphan"))
    user = relationship("User", backref=backref("test_drive_bookings", cascade="all, delete-orphan"))


class UserSavedCar(Base):
    """
    Wishlist membership: one row per (user, car)
    """
    __tablename__ = "user_saved_cars"
    __table_args__ = (UniqueConstraint("user_id", "car_id", name="uq_user_saved_car"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    car_id = Column(String(36), ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    saved_at = Column(DateTime(timezone=True), server_default=func.now())

    car = relationship("Car", backref=backref("saved_by", cascade="all, delete-orphan"))
