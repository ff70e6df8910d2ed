import logging
import os

# Settings are read at import time; point them at throwaway backends first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["THROTTLING_ENABLED"] = "false"
os.environ["DASHBOARD_CACHE_ENABLED"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import app.models  # noqa: E402,F401
from app.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.dashboard_cache import DashboardCache, get_dashboard_cache  # noqa: E402
from app.utils.auth import create_access_token  # noqa: E402
from tests.mocks import MockRedisClient  # noqa: E402

# Configure logging to ignore warnings
logging.getLogger("sqlalchemy").setLevel(logging.ERROR)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every connection of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session used by factories and by the app under test"""
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def redis_client() -> MockRedisClient:
    return MockRedisClient()


@pytest.fixture
def dashboard_cache(redis_client) -> DashboardCache:
    return DashboardCache(redis_client, enabled=True)


@pytest.fixture
def app_overrides(db_session, dashboard_cache):
    """Route the app's database and cache dependencies to the test doubles"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dashboard_cache] = lambda: dashboard_cache
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client_factory(app_overrides):
    """Build a TestClient authenticated as the given user"""

    def create_authenticated_client(user=None) -> TestClient:
        client = TestClient(app_overrides)
        if user is not None:
            access_token = create_access_token(user.id)
            client.headers.update({"Authorization": f"Bearer {access_token}"})
        return client

    return create_authenticated_client
