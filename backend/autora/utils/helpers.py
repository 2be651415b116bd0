"""
Presentation-boundary helpers: turn ORM rows into JSON-safe dicts and
format money for display.
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..models.enums import DayOfWeek

CAR_FIELDS = [
    "id", "brand", "model", "year", "price", "mileage", "color", "fuel_type",
    "transmission", "body_type", "seats", "description", "status", "featured",
    "images", "created_at", "updated_at",
]

DAY_ORDER = list(DayOfWeek)


def _isoformat(value) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _enum_value(value):
    return getattr(value, "value", value)


def format_currency(amount) -> str:
    """
    Format an amount as Indian rupees with lakh/crore digit grouping,
    e.g. 1234567.5 -> '₹12,34,567.50'.
    """
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split(".")

    # Last three digits form one group, everything before groups in twos
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        whole = ",".join(pairs + [tail])

    return f"{sign}₹{whole}.{fraction}"


def serialize_car_data(car, wishlisted: bool = False) -> dict:
    """Convert a Car row: decimal price to float, timestamps to ISO strings."""
    data = {field: getattr(car, field, None) for field in CAR_FIELDS}
    data["price"] = float(car.price) if car.price else 0
    data["status"] = _enum_value(car.status)
    data["images"] = list(car.images or [])
    data["created_at"] = _isoformat(car.created_at)
    data["updated_at"] = _isoformat(car.updated_at)
    data["wishlisted"] = wishlisted
    return data


def serialize_booking(booking, include_car: bool = True) -> dict:
    data = {
        "id": booking.id,
        "car_id": booking.car_id,
        "user_id": booking.user_id,
        "booking_date": _isoformat(booking.booking_date),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "status": _enum_value(booking.status),
        "notes": booking.notes,
        "created_at": _isoformat(booking.created_at),
        "updated_at": _isoformat(booking.updated_at),
    }
    if include_car and booking.car is not None:
        data["car"] = serialize_car_data(booking.car)
    return data


def serialize_dealership(dealership) -> dict:
    return {
        "id": dealership.id,
        "name": dealership.name,
        "address": dealership.address,
        "phone": dealership.phone,
        "email": dealership.email,
        "created_at": _isoformat(dealership.created_at),
        "updated_at": _isoformat(dealership.updated_at),
        "working_hours": [
            {
                "id": hour.id,
                "day_of_week": _enum_value(hour.day_of_week),
                "open_time": hour.open_time,
                "close_time": hour.close_time,
                "is_open": hour.is_open,
            }
            for hour in sorted(dealership.working_hours, key=lambda h: DAY_ORDER.index(DayOfWeek(h.day_of_week)))
        ],
    }
