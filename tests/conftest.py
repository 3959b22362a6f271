"""
Pytest configuration: a throwaway SQLite database file, rebuilt for every test.
"""
import os
import tempfile
from datetime import datetime, timedelta

# must be set before checkin_tracker.config is imported
_TEST_DIR = tempfile.mkdtemp(prefix="checkin_tracker_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from werkzeug.security import generate_password_hash

from checkin_tracker.auth.jwt_handler import build_token_payload, create_access_token
from checkin_tracker.checkins.models import Client
from checkin_tracker.database import Base, SessionLocal, engine, init_db
from checkin_tracker.employees.models import Employee


class FakeClock:
    """Deterministic naive-UTC clock that advances one minute per call."""

    def __init__(self, start=datetime(2026, 1, 15, 9, 0, 0), step=timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    init_db(bind=engine)
    yield
    engine.dispose()


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_data(db_session):
    """Manager with two field employees, an unrelated employee and two client sites."""
    manager = Employee(
        name="Amit Manager", email="manager@example.com",
        password_hash=generate_password_hash("managerpass"), role="manager",
    )
    db_session.add(manager)
    db_session.flush()

    rahul = Employee(
        name="Rahul Field", email="rahul@example.com",
        password_hash=generate_password_hash("rahulpass"), role="employee", manager_id=manager.id,
    )
    priya = Employee(
        name="Priya Field", email="priya@example.com",
        password_hash=generate_password_hash("priyapass"), role="employee", manager_id=manager.id,
    )
    outsider = Employee(
        name="Other Team", email="other@example.com",
        password_hash=generate_password_hash("otherpass"), role="employee",
    )
    abc = Client(name="ABC Corp", address="Connaught Place, New Delhi", latitude=28.6315, longitude=77.2167)
    xyz = Client(name="XYZ Ltd", address="Sector 18, Noida", latitude=28.5706, longitude=77.3219)
    db_session.add_all([rahul, priya, outsider, abc, xyz])
    db_session.commit()

    return {
        "manager_id": manager.id,
        "rahul_id": rahul.id,
        "priya_id": priya.id,
        "outsider_id": outsider.id,
        "abc_id": abc.id,
        "xyz_id": xyz.id,
    }


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def client():
    from checkin_tracker.main import app

    with TestClient(app) as test_client:
        yield test_client


def _headers_for(db_session, user_id):
    user = db_session.get(Employee, user_id)
    return {"Authorization": f"Bearer {create_access_token(build_token_payload(user))}"}


@pytest.fixture
def rahul_headers(db_session, seed_data):
    return _headers_for(db_session, seed_data["rahul_id"])


@pytest.fixture
def priya_headers(db_session, seed_data):
    return _headers_for(db_session, seed_data["priya_id"])


@pytest.fixture
def manager_headers(db_session, seed_data):
    return _headers_for(db_session, seed_data["manager_id"])
