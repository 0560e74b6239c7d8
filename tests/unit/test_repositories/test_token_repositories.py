"""Tests for refresh token, session and audit log repositories."""

import pytest
from datetime import timedelta

from director_auth.core.auth.entities import AuditLogEntry, RefreshToken, Session
from director_auth.core.domain.enums import AuditAction
from director_auth.infrastructure.database.repositories.audit_log_repository import SqlAuditLogRepository
from director_auth.infrastructure.database.repositories.refresh_token_repository import SqlRefreshTokenRepository
from director_auth.infrastructure.database.repositories.session_repository import SqlSessionRepository
from director_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from director_auth.utils.clock import utcnow


def refresh_token(user_id: int, token: str, expires_in: timedelta) -> RefreshToken:
    return RefreshToken(id=None, user_id=user_id, token=token, expires_at=utcnow() + expires_in)


def session(user_id: int, token: str, expires_in: timedelta) -> Session:
    return Session(
        id=None,
        session_id=f"sid-{token}",
        user_id=user_id,
        token=token,
        expires_at=utcnow() + expires_in,
    )


class TestSqlRefreshTokenRepository:
    """Test cases for SqlRefreshTokenRepository."""

    @pytest.mark.asyncio
    async def test_valid_token_lookup_respects_expiry(self, db_session, saved_user):
        repository = SqlRefreshTokenRepository(db_session)
        await repository.save_refresh_token(refresh_token(saved_user.id, "live", timedelta(days=1)))
        await repository.save_refresh_token(refresh_token(saved_user.id, "dead", timedelta(seconds=-1)))

        assert (await repository.get_valid_refresh_token("live", utcnow())).user_id == saved_user.id
        assert await repository.get_valid_refresh_token("dead", utcnow()) is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, db_session, saved_user):
        repository = SqlRefreshTokenRepository(db_session)
        await repository.save_refresh_token(refresh_token(saved_user.id, "live", timedelta(days=1)))

        assert await repository.delete_refresh_token("live") is True
        assert await repository.delete_refresh_token("live") is False

    @pytest.mark.asyncio
    async def test_delete_user_tokens_and_expired(self, db_session, saved_user):
        repository = SqlRefreshTokenRepository(db_session)
        for name in ("a", "b"):
            await repository.save_refresh_token(refresh_token(saved_user.id, name, timedelta(days=1)))
        await repository.save_refresh_token(refresh_token(saved_user.id, "old", timedelta(seconds=-1)))

        assert await repository.delete_expired(utcnow()) == 1
        assert await repository.delete_user_tokens(saved_user.id) == 2
        assert await repository.delete_user_tokens(saved_user.id) == 0


class TestSqlSessionRepository:
    """Test cases for SqlSessionRepository."""

    @pytest.mark.asyncio
    async def test_extend_live_session(self, db_session, saved_user):
        repository = SqlSessionRepository(db_session)
        await repository.save_session(session(saved_user.id, "live", timedelta(minutes=5)))
        now = utcnow()
        new_expiry = now + timedelta(hours=24)

        assert await repository.extend_session("live", new_expiry, now) is True
        assert (await repository.get_valid_session("live", now)).expires_at == new_expiry

    @pytest.mark.asyncio
    async def test_expired_session_is_not_extended(self, db_session, saved_user):
        repository = SqlSessionRepository(db_session)
        await repository.save_session(session(saved_user.id, "dead", timedelta(seconds=-1)))
        now = utcnow()

        assert await repository.get_valid_session("dead", now) is None
        assert await repository.extend_session("dead", now + timedelta(hours=24), now) is False
        assert await repository.get_valid_session("dead", now) is None

    @pytest.mark.asyncio
    async def test_delete_expired_and_user_sessions(self, db_session, saved_user):
        repository = SqlSessionRepository(db_session)
        await repository.save_session(session(saved_user.id, "live", timedelta(minutes=5)))
        await repository.save_session(session(saved_user.id, "dead", timedelta(seconds=-1)))

        assert await repository.delete_expired(utcnow()) == 1
        assert await repository.delete_user_sessions(saved_user.id) == 1
        assert await repository.delete_session("live") is False


class TestSqlAuditLogRepository:
    """Test cases for SqlAuditLogRepository."""

    @pytest.mark.asyncio
    async def test_entries_are_listed_newest_first(self, db_session, saved_user):
        repository = SqlAuditLogRepository(db_session)
        for action in (AuditAction.REGISTER, AuditAction.LOGIN, AuditAction.LOGOUT):
            await repository.add_entry(
                AuditLogEntry(id=None, user_id=saved_user.id, action=action, ip_address="10.0.0.1")
            )
        await repository.add_entry(AuditLogEntry(id=None, user_id=None, action=AuditAction.LOGIN_FAILED))

        entries = await repository.list_entries(user_id=saved_user.id)

        assert [entry.action for entry in entries] == [
            AuditAction.LOGOUT,
            AuditAction.LOGIN,
            AuditAction.REGISTER,
        ]
        assert entries[0].entity_type == "authentication"
        assert len(await repository.list_entries(limit=2)) == 2
        assert len(await repository.list_entries(offset=3)) == 1


class TestCascades:

    @pytest.mark.asyncio
    async def test_deleting_user_cascades(self, db_session, saved_user):
        """Tokens and sessions go with the user; audit entries stay with a NULL user."""
        tokens = SqlRefreshTokenRepository(db_session)
        sessions = SqlSessionRepository(db_session)
        audit = SqlAuditLogRepository(db_session)
        await tokens.save_refresh_token(refresh_token(saved_user.id, "live", timedelta(days=1)))
        await sessions.save_session(session(saved_user.id, "live", timedelta(minutes=5)))
        await audit.add_entry(AuditLogEntry(id=None, user_id=saved_user.id, action=AuditAction.LOGIN))
        await db_session.commit()

        await SqlUserRepository(db_session).delete_user(saved_user.id)
        await db_session.commit()

        assert await tokens.get_valid_refresh_token("live", utcnow()) is None
        assert await sessions.get_valid_session("live", utcnow()) is None
        entries = await audit.list_entries()
        assert len(entries) == 1
        assert entries[0].user_id is None
