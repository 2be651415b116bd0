from pydantic import BaseModel, Field
from typing import List

from ..models.enums import DayOfWeek
from .booking_schema import TIME_PATTERN

class WorkingHourIn(BaseModel):
    day_of_week: DayOfWeek
    open_time: str = Field(..., pattern=TIME_PATTERN)
    close_time: str = Field(..., pattern=TIME_PATTERN)
    is_open: bool = True

class WorkingHoursUpdate(BaseModel):
    working_hours: List[WorkingHourIn] = Field(..., min_length=1)
