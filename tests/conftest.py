"""Shared fixtures: an app per test on a throwaway SQLite file and upload dir."""

import pytest
from fastapi.testclient import TestClient

from drive.core.config import Settings
from drive.core.security import register_user
from drive.main import create_app
from drive.services.catalog import Catalog
from drive.storage.local import LocalBlobStore

OWNER_EMAIL = "testuser@example.com"
OTHER_EMAIL = "otheruser@example.com"
PASSWORD = "testpassword"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary database and upload directory."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'drive.db'}",
        session_secret="test-secret",
        storage_backend="local",
        upload_dir=str(tmp_path / "uploads"),
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def db_session(app):
    session = app.state.database.session()
    yield session
    session.close()


@pytest.fixture
def blob_store(app) -> LocalBlobStore:
    return app.state.blob_store


@pytest.fixture
def catalog(db_session, blob_store):
    return Catalog(db_session, blob_store)


@pytest.fixture
def user(db_session):
    """Create the owning test user."""
    return register_user(db_session, OWNER_EMAIL, PASSWORD)


@pytest.fixture
def other_user(db_session):
    """Create a second user for isolation tests."""
    return register_user(db_session, OTHER_EMAIL, PASSWORD)


def _login(test_client, email):
    response = test_client.post("/login", data={"email": email, "password": PASSWORD})
    assert response.status_code == 302
    return test_client


@pytest.fixture
def logged_in_client(client, user):
    return _login(client, OWNER_EMAIL)


@pytest.fixture
def other_client(app, other_user):
    with TestClient(app, follow_redirects=False) as test_client:
        yield _login(test_client, OTHER_EMAIL)
