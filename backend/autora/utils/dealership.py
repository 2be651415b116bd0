import logging

from sqlalchemy.orm import Session

from ..models.dealership_model import DealershipInfo, WorkingHour
from ..models.enums import DayOfWeek

logger = logging.getLogger(__name__)

# (open, close, is_open) used when the dealership row is first created
DEFAULT_WORKING_HOURS = {
    DayOfWeek.MONDAY: ("09:00", "18:00", True),
    DayOfWeek.TUESDAY: ("09:00", "18:00", True),
    DayOfWeek.WEDNESDAY: ("09:00", "18:00", True),
    DayOfWeek.THURSDAY: ("09:00", "18:00", True),
    DayOfWeek.FRIDAY: ("09:00", "18:00", True),
    DayOfWeek.SATURDAY: ("10:00", "16:00", True),
    DayOfWeek.SUNDAY: ("10:00", "16:00", False),
}


def get_or_create_dealership(db: Session) -> DealershipInfo:
    """Return the singleton dealership, creating it with default hours on first use."""
    dealership = db.query(DealershipInfo).first()
    if dealership:
        return dealership

    dealership = DealershipInfo(
        working_hours=[
            WorkingHour(day_of_week=day, open_time=open_time, close_time=close_time, is_open=is_open)
            for day, (open_time, close_time, is_open) in DEFAULT_WORKING_HOURS.items()
        ]
    )
    db.add(dealership)
    try:
        db.commit()
        db.refresh(dealership)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created default dealership {dealership.id}")
    return dealership
