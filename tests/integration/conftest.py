"""Common fixtures for integration tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from director_auth.api.dependencies import get_rate_limiter, get_reset_notifier
from director_auth.infrastructure.cache.rate_limiter import InMemoryRateLimiter
from director_auth.infrastructure.database import models  # noqa: F401
from director_auth.infrastructure.database import session as db_session_module
from director_auth.infrastructure.database.connection import Base, build_engine
from tests.integration.test_app import RecordingNotifier, bearer, create_test_app, register


@pytest.fixture
def test_database(tmp_path, monkeypatch):
    """
    Point the application's engine and session maker at a fresh file
    database for the duration of one test.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/integration.sqlite", poolclass=NullPool)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db_session_module, "_engine", engine)
    monkeypatch.setattr(db_session_module, "_async_session_maker", session_maker)
    yield session_maker

    asyncio.run(engine.dispose())


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter(max_requests=1000, window_seconds=900)


@pytest.fixture
def client(test_database, notifier, rate_limiter):
    """Create test client backed by the temporary database."""
    app = create_test_app()
    app.dependency_overrides[get_reset_notifier] = lambda: notifier
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def registered_user(client):
    """Register alice and return the registration body."""
    response = register(client)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def auth_headers(registered_user):
    return bearer(registered_user["accessToken"])
