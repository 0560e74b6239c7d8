"""Fixtures for repository tests against a temporary SQLite database."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from director_auth.core.auth.entities import User
from director_auth.infrastructure.database import models  # noqa: F401
from director_auth.infrastructure.database.connection import Base, build_engine
from director_auth.infrastructure.database.repositories.user_repository import SqlUserRepository


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session factory on a fresh database file; each session gets its own connection."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/repositories.sqlite", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def saved_user(db_session):
    """Persist a user and return its entity."""
    user = await SqlUserRepository(db_session).create_user(
        User(
            id=0,
            username="alice",
            email="alice@example.com",
            hashed_password="$2b$04$hash",
            verification_token="verify-me",
        )
    )
    await db_session.commit()
    return user
