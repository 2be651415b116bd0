from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import date

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

class BookingCreate(BaseModel):
    """Schema for booking a test drive"""
    car_id: str
    booking_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN, description="Slot start, HH:MM")
    end_time: str = Field(..., pattern=TIME_PATTERN, description="Slot end, HH:MM")
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_slot_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class BookingStatusUpdate(BaseModel):
    # Plain string so the allow-list check can answer with a clear message
    status: str = Field(..., description="PENDING, CONFIRMED, COMPLETED, CANCELLED or NO_SHOW")
