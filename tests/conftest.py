from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from dabus.auth.identity import IdentityProvider
from dabus.auth.schemas import Role
from dabus.auth.service import UserService
from dabus.auth.utils import create_access_token
from dabus.database import build_engine, get_db, init_db
from dabus.main import app
from dabus.trips.schemas import TripCreate
from dabus.trips.service import TripService


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = build_engine("sqlite://", timeout=5)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    # The in-memory database lives on a single connection, so requests reuse the test session
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_trip(db):
    def _make_trip(capacity=50, price=2500, origin="Dakar", destination="Touba", days_ahead=3, departure_time=time(7, 0)):
        return TripService(db).create_trip(TripCreate(
            origin=origin,
            destination=destination,
            departure_date=date.today() + timedelta(days=days_ahead),
            departure_time=departure_time,
            capacity=capacity,
            price=price
        ))
    return _make_trip


def _make_user(db, email, role):
    user_id = IdentityProvider(db).create_user(email, "secret123", {"full_name": "Test User"})
    return UserService.create_profile(db, user_id, email, "Test User", "771234567", role=role)


@pytest.fixture
def admin_user(db):
    return _make_user(db, "admin@dabus.sn", Role.ADMIN)


@pytest.fixture
def student_user(db):
    return _make_user(db, "etudiant@dabus.sn", Role.STUDENT)


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({"sub": admin_user.id, "email": admin_user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers(student_user):
    token = create_access_token({"sub": student_user.id, "email": student_user.email})
    return {"Authorization": f"Bearer {token}"}
