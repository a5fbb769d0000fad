"""
Shared pytest fixtures for users_api tests.
Environment is prepared before the app is imported: in-memory sqlite and cheap bcrypt.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "testing"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from users_api.core.security import PasswordHasher  # noqa: E402
from users_api.db.base import Base  # noqa: E402
from users_api.db.session import SessionLocal, engine  # noqa: E402
from users_api.models.user import User  # noqa: E402


@pytest.fixture(autouse=True)
def tables():
    """Fresh users table for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hasher():
    return PasswordHasher()


@pytest.fixture
def client():
    from users_api.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_payload():
    """Factory for a valid create payload; keyword args override fields."""
    def _make(**overrides):
        payload = {
            "name": "Ana",
            "lastname": "Gomez",
            "email": "ana@example.com",
            "phone": "5512345678",
            "password": "secret123",
            "created_by": 1,
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def create_user(client, user_payload):
    """Create a user through the API and return the response body's user."""
    def _create(**overrides):
        response = client.post("/users", json=user_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["user"]
    return _create


@pytest.fixture
def stored_user():
    """Read a user row straight from the database, bypassing the API."""
    def _load(user_id):
        session = SessionLocal()
        try:
            user = session.get(User, user_id)
            if user is not None:
                session.expunge(user)
            return user
        finally:
            session.close()
    return _load
