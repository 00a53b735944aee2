"""Shared fixtures and utilities for tests."""

import os
import tempfile
from pathlib import Path

# Settings are read when the app modules are imported, so the test
# environment has to be in place before any of them load.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="arcadia-tests-"))
TEST_DB_PATH = _TEST_ROOT / "test.db"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["STORAGE_PATH"] = str(_TEST_ROOT / "storage")
os.environ["STORAGE_BACKEND"] = "local"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

import core.security
from core.geofence import Coordinates
from database.engine import init_db, seed_admin_users

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password-123"
USER_EMAIL = "jane@example.com"
USER_PASSWORD = "jane-password-123"

# Default geofence target
TARGET = Coordinates(22.3193, 114.2057)


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the minimum bcrypt cost so sign-up heavy tests stay quick."""
    monkeypatch.setattr(core.security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def app():
    """The application instance with a fresh change feed."""
    from api.main import app as application
    from core.realtime import ChangeFeed

    application.state.change_feed = ChangeFeed()
    return application


@pytest.fixture
def client(app):
    """Test client with startup (table creation, admin seeding) run."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    TEST_DB_PATH.unlink(missing_ok=True)


@pytest_asyncio.fixture
async def database():
    """Tables and admin allowlist for tests that drive the app over ASGITransport."""
    await init_db()
    await seed_admin_users([ADMIN_EMAIL])
    yield
    TEST_DB_PATH.unlink(missing_ok=True)


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Create an account and sign in; returns the sign-in response body."""

    def _register(email: str, password: str = USER_PASSWORD) -> dict:
        credentials = {"email": email, "password": password}
        response = client.post("/api/v1/auth/sign-up", json=credentials)
        assert response.status_code == 201, response.text
        response = client.post("/api/v1/auth/sign-in", json=credentials)
        assert response.status_code == 200, response.text
        return response.json()

    return _register


@pytest.fixture
def admin_token(register):
    return register(ADMIN_EMAIL, ADMIN_PASSWORD)["access_token"]


@pytest.fixture
def admin_headers(admin_token):
    return _bearer(admin_token)


@pytest.fixture
def user_session(register):
    """Sign-in body for a regular (non-admin) user."""
    return register(USER_EMAIL, USER_PASSWORD)


@pytest.fixture
def user_headers(user_session):
    return _bearer(user_session["access_token"])


@pytest.fixture
def access_request_payload():
    return {
        "name": "Jane Doe",
        "location_lat": TARGET.latitude,
        "location_lng": TARGET.longitude,
        "device_id": "device_abc123xyzkq1x2y3",
    }
