"""
Test configuration for the clinic booking backend.
"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["MAIL_SERVER"] = ""
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""

from datetime import date, datetime
from decimal import Decimal
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_booking.database import Base, get_db, get_session_factory
from clinic_booking.main import app
from clinic_booking.auth.models import User, UserRole
from clinic_booking.core.clock import Clock
from clinic_booking.core.security import hash_password, create_access_token
from clinic_booking.doctors.models import Doctor, Specialty
from clinic_booking.notifications.outbox import NotificationFailureLog, NotificationOutbox
from clinic_booking.appointments.service import AppointmentService
from clinic_booking.appointments.dependencies import get_clock, get_notifier, get_failure_log

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Tuesday; the next Monday is NEXT_MONDAY
NOW = datetime(2030, 1, 1, 9, 0)
NEXT_MONDAY = date(2030, 1, 7)
PASSWORD = "Password123"


class FixedClock(Clock):
    """Clock frozen at ``current``; tests reassign it to move time."""

    def __init__(self, current):
        super().__init__()
        self.current = current

    def now(self):
        return self.current


class RecordingNotifier:
    """Notifier that keeps what it was asked to send, or fails on demand."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, event, notice):
        if self.fail:
            raise RuntimeError("SMTP server unreachable")
        self.sent.append((event, notice))

    def notify_booked(self, notice):
        self._record("booked", notice)

    def notify_confirmed(self, notice):
        self._record("confirmed", notice)

    def notify_cancelled(self, notice):
        self._record("cancelled", notice)

    def notify_rescheduled(self, notice):
        self._record("rescheduled", notice)

    def notify_reminder(self, notice):
        self._record("reminder", notice)

    @property
    def events(self):
        return [event for event, _ in self.sent]


class RecordingScheduler:
    """Scheduler that holds queued work until run() is called."""

    def __init__(self):
        self.queued = []

    def __call__(self, func, *args):
        self.queued.append((func, args))

    def run(self):
        queued, self.queued = self.queued, []
        for func, args in queued:
            func(*args)


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    # Drop tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failure_log():
    return NotificationFailureLog(max_size=10)


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def service(db, clock, notifier, failure_log, scheduler):
    """AppointmentService whose notifications wait in the recording scheduler"""
    outbox = NotificationOutbox(notifier, failure_log, scheduler=scheduler)
    return AppointmentService(db, clock, outbox, cancellation_window_hours=24)


@pytest.fixture(scope="function")
def client(db, clock, notifier, failure_log):
    """
    Create a test client with a test database session.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    # Override the get_db dependency and the per-app collaborators
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_failure_log] = lambda: failure_log

    # Create test client
    with TestClient(app) as client:
        yield client

    # Remove dependency override
    app.dependency_overrides = {}


def make_user(db, email, role=UserRole.USER, name="Test User"):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"id": user.id, "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return make_user(db, "patient@example.com", name="Pat Patient")


@pytest.fixture
def other_user(db):
    return make_user(db, "other@example.com", name="Olive Other")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


def make_doctor(db, email="house@example.com", **overrides):
    data = dict(
        name="Dr. Gregory House",
        specialty=Specialty.GENERAL_MEDICINE,
        qualifications="MD",
        experience=20,
        availability=[
            {"day": "Monday", "start_time": "09:00", "end_time": "17:00"},
            {"day": "Wednesday", "start_time": "14:00", "end_time": "18:00"},
        ],
        hospital="Princeton-Plainsboro",
        address="1 Hospital Road",
        city="Princeton",
        state="NJ",
        zip_code="08540",
        phone="+1 609 555 0100",
        email=email,
        consultation_fee=Decimal("150.00"),
        rating=4.5,
        total_reviews=12,
        is_active=True,
    )
    data.update(overrides)
    doctor = Doctor(**data)
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


@pytest.fixture
def doctor(db):
    """Doctor open Monday 09:00-17:00 and Wednesday 14:00-18:00"""
    return make_doctor(db)


@pytest.fixture
def doctor_factory(db):
    """Create extra doctors: doctor_factory(email=..., **fields)"""
    def factory(email, **overrides):
        return make_doctor(db, email=email, **overrides)
    return factory


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def session_factory():
    """Factory for sessions independent of the ``db`` fixture, same database"""
    return TestingSessionLocal
