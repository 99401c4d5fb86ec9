"""Shared test fixtures."""
import itertools
import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings
from models import Base, Booking, Transporter, get_db
from models.transporter import route_sample
from utils.date_helpers import utc_now

from tests.locations import NAIROBI, NAKURU


@pytest.fixture
def engine():
    """In-memory database shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Database session for one test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    """Settings with defaults, ignoring any local .env."""
    return Settings(_env_file=None, app_env="testing", notification_webhook_url=None)


@pytest.fixture
def make_transporter(db_session):
    """Factory persisting transporters; ``location=None`` means never reported."""
    counter = itertools.count(1)

    def _make(location=NAIROBI, **overrides):
        number = next(counter)
        fields = dict(
            id=f"T-{number:03d}",
            user_id=f"operator-{number}",
            display_name=f"Driver {number}",
            phone_number=f"+254-700-000{number:03d}",
            rating=4.0,
            total_trips=10,
            vehicle_type="truck",
            vehicle_registration=f"KDA {number:03d}A",
            vehicle_capacity=10000.0,
            refrigerated=False,
            humidity_control=False,
            current_route=[route_sample(location, utc_now())] if location else None,
            last_known_location=location,
            accepting_booking=True,
            status="approved",
            account_status=True,
        )
        fields.update(overrides)
        transporter = Transporter(**fields)
        db_session.add(transporter)
        db_session.commit()
        return transporter

    return _make


@pytest.fixture
def make_booking(db_session):
    """Factory persisting pending bookings."""
    counter = itertools.count(1)

    def _make(**overrides):
        number = next(counter)
        fields = dict(
            request_id=f"A-TEST{number:04d}-{number}",
            user_id="shipper-1",
            booking_type="Agri",
            booking_mode="instant",
            urgency_level="Low",
            weight_kg=1000.0,
            product_type="Maize",
            from_location=NAIROBI,
            to_location=NAKURU,
            status="pending",
        )
        fields.update(overrides)
        booking = Booking(**fields)
        db_session.add(booking)
        db_session.commit()
        return booking

    return _make


@pytest.fixture
def booking_payload():
    """Valid instant Agri request body."""
    return {
        "bookingType": "Agri",
        "bookingMode": "instant",
        "fromLocation": dict(NAIROBI),
        "toLocation": dict(NAKURU),
        "weightKg": 1500,
        "productType": "Maize",
        "urgencyLevel": "Medium",
    }


@pytest.fixture
def scheduled_recurrences():
    """Base booking IDs the API asked to expand."""
    return []


@pytest.fixture
def client(session_factory, settings, scheduled_recurrences):
    """API client bound to the test database; recurrence requests are captured."""
    from api.dependencies import get_recurrence_scheduler
    from api.main import app
    from config import get_settings

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_scheduler():
        return scheduled_recurrences.append

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_recurrence_scheduler] = override_scheduler

    yield TestClient(app)

    app.dependency_overrides.clear()
