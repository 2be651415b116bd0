from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

from autora.models.enums import BookingStatus, CarStatus
from autora.utils.helpers import format_currency, serialize_booking, serialize_car_data


def make_row(**overrides):
    fields = dict(
        id="car-1", brand="Maruti", model="Swift", year=2020,
        price=Decimal("645000.50"), mileage="22 kmpl", color="Red",
        fuel_type="Petrol", transmission="Manual", body_type="Hatchback",
        seats=5, description="City car", status=CarStatus.AVAILABLE,
        featured=True, images=["https://cdn/a.jpg", "https://cdn/b.jpg"],
        created_at=datetime(2025, 3, 1, 9, 30), updated_at=datetime(2025, 3, 2, 10, 0),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_format_currency_groups_indian_style():
    assert format_currency(1234567.5) == "₹12,34,567.50"
    assert format_currency(999) == "₹999.00"
    assert format_currency(100000) == "₹1,00,000.00"
    assert format_currency(Decimal("25000000")) == "₹2,50,00,000.00"


def test_format_currency_handles_none_and_negative():
    assert format_currency(None) == "₹0.00"
    assert format_currency(-1500) == "-₹1,500.00"


def test_serialize_car_converts_price_and_timestamps_only():
    row = make_row()
    data = serialize_car_data(row)

    assert data["price"] == 645000.5
    assert isinstance(data["price"], float)
    assert data["created_at"] == "2025-03-01T09:30:00"
    assert data["updated_at"] == "2025-03-02T10:00:00"
    assert data["wishlisted"] is False

    for field in ("id", "brand", "model", "year", "mileage", "color", "fuel_type",
                  "transmission", "body_type", "seats", "description", "featured", "images"):
        assert data[field] == getattr(row, field)
    assert data["status"] == "AVAILABLE"


def test_serialize_car_defaults_missing_price_to_zero():
    data = serialize_car_data(make_row(price=None, created_at=None), wishlisted=True)
    assert data["price"] == 0
    assert data["created_at"] is None
    assert data["wishlisted"] is True


def test_serialize_booking_nests_car():
    booking = SimpleNamespace(
        id="b-1", car_id="car-1", user_id="u-1", booking_date=date(2025, 6, 2),
        start_time="10:00", end_time="11:00", status=BookingStatus.CONFIRMED,
        notes=None, created_at=datetime(2025, 5, 1), updated_at=datetime(2025, 5, 1),
        car=make_row(),
    )
    data = serialize_booking(booking)

    assert data["booking_date"] == "2025-06-02"
    assert data["status"] == "CONFIRMED"
    assert data["car"]["price"] == 645000.5

    assert "car" not in serialize_booking(booking, include_car=False)
