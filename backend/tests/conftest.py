"""
Shared fixtures: an in-memory floor database, an API client bound to it, and
staff members of one location with signed tokens.
"""

import os

# Point the app's own engine at a throwaway database before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Location, ServicePeriod, Table
from shared.config.constants import Roles
from shared.infrastructure.db import get_db
from shared.security.auth import sign_staff_token

# One connection shared by every session so the in-memory tables survive
engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


def _persist(db, row):
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def db_session():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """API client whose requests use the test session."""
    app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seed_location(db_session):
    return _persist(db_session, Location(name="Test Bistro", timezone="UTC", is_active=True))


@pytest.fixture
def other_location(db_session):
    """A second location the default staff member has no access to."""
    return _persist(db_session, Location(name="Other Bistro", timezone="UTC", is_active=True))


@pytest.fixture
def seed_service_periods(db_session, seed_location):
    """Lunch and dinner for the test location."""
    periods = [
        ServicePeriod(location_id=seed_location.id, name="Lunch", start_time="11:00", end_time="15:00"),
        ServicePeriod(location_id=seed_location.id, name="Dinner", start_time="17:00", end_time="23:00"),
    ]
    db_session.add_all(periods)
    db_session.commit()
    return periods


@pytest.fixture
def seed_table(db_session, seed_location):
    """Table T5 at the test location."""
    return _persist(db_session, Table(location_id=seed_location.id, table_number="T5", capacity=4))


def _staff(location, user_id, role):
    return {"user_id": user_id, "location_ids": [str(location.id)], "roles": [role]}


def _bearer(ctx):
    return {"Authorization": f"Bearer {sign_staff_token(ctx['user_id'], ctx['location_ids'], ctx['roles'])}"}


@pytest.fixture
def staff_ctx(seed_location):
    """User context of a server working the test location."""
    return _staff(seed_location, "server-1", Roles.SERVER)


@pytest.fixture
def manager_ctx(seed_location):
    return _staff(seed_location, "manager-1", Roles.MANAGER)


@pytest.fixture
def kitchen_ctx(seed_location):
    return _staff(seed_location, "cook-1", Roles.KITCHEN)


@pytest.fixture
def auth_headers(staff_ctx):
    return _bearer(staff_ctx)


@pytest.fixture
def manager_headers(manager_ctx):
    return _bearer(manager_ctx)
