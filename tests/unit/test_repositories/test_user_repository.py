"""Tests for the SQL user repository."""

import asyncio

import pytest
from datetime import timedelta

from director_auth.core.auth.entities import User
from director_auth.core.auth.exceptions import UserAlreadyExistsException
from director_auth.core.domain.enums import UserRole
from director_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from director_auth.utils.clock import utcnow


@pytest.fixture
def user_repository(db_session):
    return SqlUserRepository(db_session)


class TestSqlUserRepository:
    """Test cases for SqlUserRepository."""

    @pytest.mark.asyncio
    async def test_create_user_sets_defaults(self, saved_user):
        assert saved_user.id > 0
        assert saved_user.role == UserRole.USER
        assert saved_user.is_active is True
        assert saved_user.is_verified is False
        assert saved_user.failed_login_attempts == 0
        assert saved_user.created_at is not None

    @pytest.mark.asyncio
    async def test_lookups_are_case_insensitive(self, user_repository, saved_user):
        assert (await user_repository.get_user_by_email("ALICE@example.COM")).id == saved_user.id
        assert (await user_repository.get_user_by_username("Alice")).id == saved_user.id
        assert await user_repository.get_user_by_username("bob") is None

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, user_repository, saved_user):
        with pytest.raises(UserAlreadyExistsException):
            await user_repository.create_user(
                User(
                    id=0,
                    username="ALICE",
                    email="other@example.com",
                    hashed_password="$2b$04$hash",
                )
            )

    @pytest.mark.asyncio
    async def test_failed_attempts_lock_at_threshold(self, user_repository, saved_user):
        lock_until = utcnow() + timedelta(minutes=15)

        for attempt in range(1, 5):
            user = await user_repository.increment_failed_attempts(saved_user.id, 5, lock_until)
            assert user.failed_login_attempts == attempt
            assert user.locked_until is None

        user = await user_repository.increment_failed_attempts(saved_user.id, 5, lock_until)
        assert user.failed_login_attempts == 5
        assert user.locked_until == lock_until
        assert user.is_locked() is True

    @pytest.mark.asyncio
    async def test_concurrent_failures_are_all_counted(self, session_maker, saved_user):
        """Simultaneous failed logins on separate connections lose no increments."""
        lock_until = utcnow() + timedelta(minutes=15)
        attempts = 8

        async def fail_once():
            async with session_maker() as session:
                await SqlUserRepository(session).increment_failed_attempts(
                    saved_user.id, 5, lock_until
                )
                await session.commit()

        await asyncio.gather(*(fail_once() for _ in range(attempts)))

        async with session_maker() as session:
            user = await SqlUserRepository(session).get_user_by_id(saved_user.id)
        assert user.failed_login_attempts == attempts
        assert user.locked_until == lock_until

    @pytest.mark.asyncio
    async def test_reset_failed_attempts(self, user_repository, saved_user):
        lock_until = utcnow() + timedelta(minutes=15)
        await user_repository.increment_failed_attempts(saved_user.id, 1, lock_until)
        login_at = utcnow()

        user = await user_repository.reset_failed_attempts(saved_user.id, login_at)

        assert user.failed_login_attempts == 0
        assert user.locked_until is None
        assert user.last_login_at == login_at

    @pytest.mark.asyncio
    async def test_reset_token_expiry_is_enforced(self, user_repository, saved_user):
        now = utcnow()
        await user_repository.set_reset_token(saved_user.id, "reset-me", now + timedelta(minutes=60))

        assert (await user_repository.get_user_by_reset_token("reset-me", now)).id == saved_user.id
        assert await user_repository.get_user_by_reset_token(
            "reset-me", now + timedelta(minutes=61)
        ) is None
        assert await user_repository.get_user_by_reset_token("other", now) is None

    @pytest.mark.asyncio
    async def test_update_password_clears_reset_token(self, user_repository, saved_user):
        now = utcnow()
        await user_repository.set_reset_token(saved_user.id, "reset-me", now + timedelta(minutes=60))
        await user_repository.increment_failed_attempts(saved_user.id, 1, now + timedelta(minutes=15))

        await user_repository.update_password(saved_user.id, "$2b$04$new")
        user = await user_repository.get_user_by_id(saved_user.id)
        assert user.hashed_password == "$2b$04$new"
        assert user.reset_token is None
        assert user.reset_token_expires_at is None
        assert user.is_locked() is True

        await user_repository.update_password(saved_user.id, "$2b$04$newer", clear_lockout=True)
        user = await user_repository.get_user_by_id(saved_user.id)
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    @pytest.mark.asyncio
    async def test_mark_verified(self, user_repository, saved_user):
        assert (await user_repository.get_user_by_verification_token("verify-me")).id == saved_user.id

        await user_repository.mark_verified(saved_user.id)

        user = await user_repository.get_user_by_id(saved_user.id)
        assert user.is_verified is True
        assert user.verification_token is None
        assert await user_repository.get_user_by_verification_token("verify-me") is None

    @pytest.mark.asyncio
    async def test_update_profile(self, user_repository, saved_user):
        user = await user_repository.update_profile(saved_user.id, first_name="Alice", last_name="Smith")

        assert user.full_name == "Alice Smith"

    @pytest.mark.asyncio
    async def test_update_profile_to_taken_email(self, user_repository, saved_user):
        bob = await user_repository.create_user(
            User(id=0, username="bob", email="bob@example.com", hashed_password="$2b$04$hash")
        )

        with pytest.raises(UserAlreadyExistsException):
            await user_repository.update_profile(bob.id, email="alice@example.com")

    @pytest.mark.asyncio
    async def test_set_active(self, user_repository, saved_user):
        await user_repository.set_active(saved_user.id, False)

        assert (await user_repository.get_user_by_id(saved_user.id)).is_active is False

    @pytest.mark.asyncio
    async def test_delete_user(self, user_repository, saved_user):
        assert await user_repository.delete_user(saved_user.id) is True
        assert await user_repository.get_user_by_id(saved_user.id) is None
        assert await user_repository.delete_user(saved_user.id) is False
