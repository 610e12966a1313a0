"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; provide the required values before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-geoattend-tests")
os.environ["BUSINESS_TZ"] = "Asia/Kolkata"

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine

from geoattend.main import app
from geoattend.db.base import Base
from geoattend.core.deps import get_db
from geoattend.core.security import hash_password
from geoattend.models import Branch, Employee, Role  # noqa: F401  (registers all tables)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Tuesday 2026-03-10 10:00 in Asia/Kolkata (inside office hours)
OFFICE_MORNING_UTC = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)
OFFICE_LAT = 28.6139
OFFICE_LNG = 77.2090


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the service clock. Returns a setter so a test can move time forward."""
    import geoattend.services.attendance_service as attendance_service
    import geoattend.services.time_rules as time_rules

    current = {"now": OFFICE_MORNING_UTC}

    def _now():
        return current["now"]

    monkeypatch.setattr(attendance_service, "now_utc", _now)
    monkeypatch.setattr(time_rules, "now_utc", _now)

    def set_now(value: datetime):
        current["now"] = value

    return set_now


@pytest.fixture
def branch(db):
    """Office branch with the default 50 m radius"""
    branch = Branch(name="Head Office", latitude=OFFICE_LAT, longitude=OFFICE_LNG, radius=50, active=True)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


@pytest.fixture
def manager(db):
    manager = Employee(
        emp_code="MGR001",
        name="Test Manager",
        role=Role.MANAGER.value,
        password_hash=hash_password("managerpass"),
        active=True,
    )
    db.add(manager)
    db.commit()
    db.refresh(manager)
    return manager


@pytest.fixture
def employee(db, manager):
    employee = Employee(
        emp_code="EMP001",
        name="Test Employee",
        role=Role.EMPLOYEE.value,
        manager_id=manager.id,
        password_hash=hash_password("testpass123"),
        active=True,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def hr_user(db):
    hr = Employee(
        emp_code="HR001",
        name="HR User",
        role=Role.HR.value,
        password_hash=hash_password("hrpass123"),
        active=True,
    )
    db.add(hr)
    db.commit()
    db.refresh(hr)
    return hr


@pytest.fixture
def auth_headers(client):
    """Log in through the API and return the bearer header"""
    def _login(emp_code, password):
        response = client.post(
            "/api/v1/auth/login",
            json={"emp_code": emp_code, "password": password}
        )
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login
