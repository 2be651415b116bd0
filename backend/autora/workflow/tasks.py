import logging

from ..core.celery_app import celery_app
from ..core.database import SessionLocal
from ..models.booking_model import TestDriveBooking
from ..agents.communication_agent.email_handler import (
    SUBJECTS,
    render_booking_email,
    send_email,
    smtp_configured,
)
from ..utils.dealership import get_or_create_dealership

logger = logging.getLogger(__name__)


@celery_app.task(name="send_booking_email_task", bind=True, max_retries=3)
def send_booking_email_task(self, booking_id: str, kind: str):
    """Email the booking's owner about a new booking or a status change"""
    logger.info(f"[BOOKING_EMAIL] Starting {kind} email for booking {booking_id}")

    if kind not in SUBJECTS:
        logger.warning(f"[BOOKING_EMAIL] Unknown email kind: {kind}")
        return "skipped"

    if not smtp_configured():
        logger.info("[BOOKING_EMAIL] SMTP not configured, skipping")
        return "skipped"

    db = SessionLocal()
    try:
        booking = db.query(TestDriveBooking).filter(TestDriveBooking.id == booking_id).first()
        if not booking:
            logger.warning(f"[BOOKING_EMAIL] Booking not found: {booking_id}")
            return "skipped"

        dealership = get_or_create_dealership(db)
        body = render_booking_email(kind, booking, dealership.name)
        send_email(booking.user.email, SUBJECTS[kind], body)

        return {
            "booking_id": booking_id,
            "kind": kind,
            "recipient": booking.user.email,
        }

    except Exception as e:
        logger.error(f"[BOOKING_EMAIL] Error: {e}", exc_info=True)

        if self.request.retries < self.max_retries:
            countdown = 2 ** self.request.retries * 5
            raise self.retry(exc=e, countdown=countdown)
        raise
    finally:
        db.close()


def queue_booking_email(booking_id: str, kind: str):
    """Hand the email to the worker; a broker outage must not fail the request."""
    try:
        send_booking_email_task.delay(booking_id, kind)
    except Exception as e:
        logger.warning(f"Could not queue {kind} email for booking {booking_id}: {e}")
