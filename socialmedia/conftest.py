"""
Pytest configuration and shared fixtures.

Test environment variables are set here, before any app import, and the
settings cache is cleared so they take effect.
"""

import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_socialmedia.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Clear settings cache before any app imports to ensure test env vars are used
from socialmedia.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient  # noqa: E402

from socialmedia import models  # noqa: E402,F401
from socialmedia.main import app  # noqa: E402
from socialmedia.storage import SessionLocal, Base, engine  # noqa: E402


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """A session on a freshly created schema, dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
