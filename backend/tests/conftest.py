import os

# Must be set before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from autora.main import app
from autora.core.auth import get_auth_client
from autora.core.database import Base, get_db
from autora.core.rate_limit import image_search_rate_limit
from autora.core.storage import CarImageStorage, get_optional_storage, get_storage
from autora.agents.vision_agent.extractor import get_extractor
from autora.models import booking_model
from autora.models.car_model import Car
from autora.models.enums import BookingStatus, CarStatus, UserRole
from autora.models.user_model import User
from autora.schemas.car_schema import CarDetails
from autora.schemas.user_schema import ProviderProfile
from autora.workflow import tasks

SUPABASE_URL = "https://proj.supabase.co"


class FakeAuthClient:
    """Maps bearer tokens straight to provider profiles."""

    def __init__(self):
        self.profiles = {}

    def register(self, token, profile: ProviderProfile):
        self.profiles[token] = profile

    def verify_session(self, token):
        profile = self.profiles.get(token)
        return profile.provider_user_id if profile else None

    def get_user(self, provider_user_id):
        for profile in self.profiles.values():
            if profile.provider_user_id == provider_user_id:
                return profile
        raise AssertionError(f"unknown provider user {provider_user_id}")


class FakeExtractor:
    def __init__(self):
        self.calls = []
        self.error = None

    def extract(self, image_bytes, mime_type):
        self.calls.append((image_bytes, mime_type))
        if self.error:
            raise self.error
        return CarDetails(
            brand="Toyota", model="Fortuner", year=2022, color="White",
            price="3500000", mileage="10 kmpl", seats="7", body_type="SUV",
            fuel_type="Diesel", transmission="Automatic",
            description="Rugged seven seater.", confidence=0.86,
        )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def auth_client():
    return FakeAuthClient()


@pytest.fixture
def storage_client():
    return MagicMock()


@pytest.fixture
def storage(storage_client):
    return CarImageStorage(storage_client, SUPABASE_URL, "car-images")


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def email_queue(monkeypatch):
    delay = MagicMock()
    monkeypatch.setattr(tasks.send_booking_email_task, "delay", delay)
    return delay


@pytest.fixture
def client(session_factory, auth_client, storage, extractor, email_queue):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_optional_storage] = lambda: storage
    app.dependency_overrides[get_extractor] = lambda: extractor
    app.dependency_overrides[image_search_rate_limit] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_user(db, auth_client, token, role=UserRole.USER, email=None, name="Test User"):
    email = email or f"{token}@example.com"
    user = User(clerk_user_id=f"clerk_{token}", email=email, name=name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    auth_client.register(token, ProviderProfile(provider_user_id=user.clerk_user_id, email=email))
    return user


@pytest.fixture
def admin(db, auth_client):
    return make_user(db, auth_client, "admin-token", role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def customer(db, auth_client):
    return make_user(db, auth_client, "user-token", name="Carl Customer")


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def user_headers(customer):
    return {"Authorization": "Bearer user-token"}


_created = [datetime(2025, 1, 1, 12, 0, 0)]

def make_car(db, **overrides):
    # Strictly increasing created_at keeps "newest" ordering deterministic
    _created[0] += timedelta(minutes=1)
    fields = dict(
        brand="Honda", model="City", year=2021, price=Decimal("1150000.00"),
        mileage="17 kmpl", color="Silver", fuel_type="Petrol",
        transmission="Manual", body_type="Sedan", seats=5,
        description="Well kept sedan", status=CarStatus.AVAILABLE,
        featured=False,
        images=[f"{SUPABASE_URL}/storage/v1/object/public/car-images/cars/x/image-1-0.jpeg"],
        created_at=_created[0], updated_at=_created[0],
    )
    fields.update(overrides)
    car = Car(**fields)
    db.add(car)
    db.commit()
    db.refresh(car)
    return car


def make_booking(db, car, user, status=BookingStatus.PENDING, booking_date=None, start_time="10:00", end_time="11:00"):
    booking = booking_model.TestDriveBooking(
        car_id=car.id, user_id=user.id,
        booking_date=booking_date or date(2025, 6, 2),
        start_time=start_time, end_time=end_time, status=status,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
