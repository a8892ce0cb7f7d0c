import os

# Settings are read at import time, so they must be in place before the app loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["DS_COOKIE_SECRET"] = "test-cookie-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["CLINIC_TIMEZONE"] = "UTC"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from clinic_app.cache import InMemoryCache  # noqa: E402
from clinic_app.database import Base, get_db  # noqa: E402
from clinic_app.main import app  # noqa: E402
from clinic_app.models import Order, Service  # noqa: E402
from clinic_app.models import Session as TreatmentSession  # noqa: E402

DOCTOR_ID = "doctor-1"
BOOKING_DAY = date(2030, 5, 14)

PATIENT_HEADERS = {"Authorization": "Bearer patient-token"}
OTHER_PATIENT_HEADERS = {"Authorization": "Bearer other-token"}
ADMIN_HEADERS = {"Authorization": "Bearer admin-token"}


class FakeIdentityBackend:
    """Stands in for the identity backend: token -> user, user id -> profile"""

    def __init__(self):
        self.users = {}
        self.profiles = {}
        self.user_lookups = 0
        self.fail = False

    def add_user(self, token, user_id, role=None, email=None):
        self.users[token] = {"id": user_id, "email": email or f"{user_id}@example.com"}
        self.profiles[user_id] = {"id": user_id, "email": email, "role": role}

    async def get_current_user(self, access_token):
        self.user_lookups += 1
        if self.fail:
            raise RuntimeError("identity backend down")
        if not access_token:
            return None
        return self.users.get(access_token)

    async def get_profile(self, user_id):
        return self.profiles.get(user_id)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def identity():
    backend = FakeIdentityBackend()
    backend.add_user("patient-token", "patient-1", role="patient")
    backend.add_user("other-token", "patient-2", role="patient")
    backend.add_user("admin-token", "admin-1", role="admin")
    return backend


@pytest.fixture
def client(session_factory, cache, identity):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    original_cache, original_identity = app.state.cache, app.state.identity
    app.dependency_overrides[get_db] = override_get_db
    app.state.cache = cache
    app.state.identity = identity
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.cache = original_cache
        app.state.identity = original_identity


@pytest.fixture
def service_50(db_session):
    service = Service(name="Physiotherapy", duration_minutes=50)
    db_session.add(service)
    db_session.commit()
    db_session.refresh(service)
    return service


@pytest.fixture
def make_order(db_session):
    def _make(
        booking_time="10:00 am",
        service=None,
        status="pending",
        customer_id="patient-1",
        doctor_id=DOCTOR_ID,
        booking_date=BOOKING_DAY,
    ):
        order = Order(
            customer_id=customer_id,
            service_id=service.id if service else None,
            doctor_id=doctor_id,
            booking_date=booking_date,
            booking_time=booking_time,
            session_count=1,
            status=status,
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


@pytest.fixture
def make_session(db_session):
    def _make(order, session_number=1, scheduled_date=None, status="scheduled", **fields):
        session = TreatmentSession(
            order_id=order.id,
            session_number=session_number,
            scheduled_date=scheduled_date,
            status=status,
            **fields,
        )
        db_session.add(session)
        db_session.commit()
        db_session.refresh(session)
        return session

    return _make
