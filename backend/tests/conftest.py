"""Pytest fixtures — file-backed SQLite database per test, pinned clock, in-memory roles."""
from datetime import datetime, date, time
from decimal import Decimal

import pytest
import pytz
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.clock import FixedClock, get_clock
from app.database import Base, get_db, get_session_factory
from app.main import app
from app.services.authorization import get_role_checker
from app.services.notification_service import get_notifier

# Import all models so they register with Base.metadata
from app.models.facility import Facility                    # noqa: F401
from app.models.booking import Booking                      # noqa: F401
from app.models.approval import BookingApproval             # noqa: F401
from app.models.recurring_booking import RecurringBooking   # noqa: F401
from app.models.role import UserRole                        # noqa: F401
from app.models.notification import NotificationOutbox      # noqa: F401
from app.models.reminder import BookingReminder             # noqa: F401

MANAGER = "11111111-1111-1111-1111-111111111111"
APPROVER = "22222222-2222-2222-2222-222222222222"
RESIDENT = "33333333-3333-3333-3333-333333333333"
NEIGHBOUR = "44444444-4444-4444-4444-444444444444"

# 2024-01-01 is a Monday
TODAY = date(2024, 1, 1)


class InMemoryRoleChecker:
    """Role grants held in a dict: user_id -> {(role, facility_id or None)}."""

    def __init__(self):
        self.grants: dict[str, set] = {}

    def grant(self, user_id: str, role: str, facility_id: str = None) -> None:
        self.grants.setdefault(user_id, set()).add((role, facility_id))

    def has_role(self, actor_id, roles, scope=None) -> bool:
        roles = set(roles)
        return any(
            role in roles and (granted_scope is None or granted_scope == scope)
            for role, granted_scope in self.grants.get(actor_id, ())
        )


class RecordingNotifier:
    """Captures deliveries; set `fail = True` to make every delivery raise."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def notify(self, recipient_id, subject, body, reference_id) -> None:
        if self.fail:
            raise ConnectionError("push gateway unreachable")
        self.sent.append({
            "recipient_id": recipient_id,
            "subject": subject,
            "body": body,
            "reference_id": reference_id,
        })


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(pytz.utc.localize(datetime.combine(TODAY, time(8, 0))))


@pytest.fixture
def roles():
    checker = InMemoryRoleChecker()
    checker.grant(MANAGER, "facility_manager")
    checker.grant(APPROVER, "community_admin")
    return checker


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(session_factory, clock, roles, notifier):
    """FastAPI TestClient with the database, clock, roles and notifier overridden."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_role_checker] = lambda: roles
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def make_facility(db, name: str = "Multipurpose Hall", hourly_rate: str = "50.00", **overrides) -> Facility:
    """Insert a facility directly (08:00-22:00 every day by default)."""
    values = {
        "name": name,
        "location": "Block A",
        "capacity": 40,
        "hourly_rate": Decimal(hourly_rate),
        "created_by": MANAGER,
    }
    values.update(overrides)
    facility = Facility(**values)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    return facility


def create_test_facility(client: TestClient, name: str = "Badminton Court", hourly_rate: str = "20.00", **extra) -> dict:
    """Helper — POST /api/facilities and return response JSON."""
    payload = {"name": name, "created_by": MANAGER, "hourly_rate": hourly_rate, "capacity": 4}
    payload.update(extra)
    resp = client.post("/api/facilities/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_booking(client: TestClient, facility_id: str, start: str = "10:00", end: str = "12:00",
                        booking_date: str = "2024-01-02", user_id: str = RESIDENT):
    """Helper — POST /api/bookings and return the raw response."""
    return client.post("/api/bookings/", json={
        "facility_id": facility_id,
        "user_id": user_id,
        "booking_date": booking_date,
        "start_time": start,
        "end_time": end,
        "purpose": "Community meeting",
    })
