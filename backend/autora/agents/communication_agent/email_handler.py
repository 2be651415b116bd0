import os
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...core.config import settings
from ...utils.helpers import format_currency

logger = logging.getLogger(__name__)

# Path to the templates directory
TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(['html']),
)
env.filters['currency'] = format_currency

SUBJECTS = {
    "confirmation": "Your test drive request has been received",
    "status_update": "Update on your test drive booking",
}


def smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER)


def render_booking_email(kind: str, booking, dealership_name: str) -> str:
    """Render the HTML body for a booking email."""
    template = env.get_template(f"booking_{kind}.html")
    return template.render(
        booking=booking,
        car=booking.car,
        user=booking.user,
        dealership_name=dealership_name,
    )


def send_email(recipient_email: str, subject: str, html_body: str):
    """
    Connects to an SMTP server and sends an HTML email.
    """
    if not recipient_email:
        raise ValueError("Recipient email cannot be empty.")

    msg = MIMEMultipart('alternative')
    msg['From'] = f"{settings.SMTP_SENDER_NAME} <{settings.SMTP_USER}>"
    msg['To'] = recipient_email
    msg['Subject'] = subject
    msg.attach(MIMEText(html_body, 'html'))

    try:
        # Using a 'with' statement ensures the connection is automatically closed
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()  # Secure the connection
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
            logger.info(f"Email sent successfully to {recipient_email}")
    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}. Error: {e}")
        raise
