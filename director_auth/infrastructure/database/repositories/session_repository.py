"""Session repository implementation."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.core.auth.entities import Session
from director_auth.core.auth.interfaces import SessionRepositoryInterface
from director_auth.infrastructure.database.models import SessionModel


class SqlSessionRepository(SessionRepositoryInterface):
    """SQLAlchemy implementation of the session repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save_session(self, session: Session) -> Session:
        session_model = SessionModel(
            session_id=session.session_id,
            user_id=session.user_id,
            token=session.token,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            expires_at=session.expires_at,
        )

        self._session.add(session_model)
        await self._session.flush()
        return self._model_to_entity(session_model)

    async def get_valid_session(self, token: str, now: datetime) -> Optional[Session]:
        result = await self._session.execute(
            select(SessionModel)
            .where(SessionModel.token == token, SessionModel.expires_at > now)
            .execution_options(populate_existing=True)
        )
        session_model = result.scalar_one_or_none()

        if session_model:
            return self._model_to_entity(session_model)
        return None

    async def extend_session(self, token: str, expires_at: datetime, now: datetime) -> bool:
        """
        Push the expiry of a live session forward.

        The ``expires_at > now`` guard is part of the UPDATE, so a session
        that lapsed between lookup and extension stays expired.
        """
        result = await self._session.execute(
            update(SessionModel)
            .where(SessionModel.token == token, SessionModel.expires_at > now)
            .values(expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_session(self, token: str) -> bool:
        result = await self._session.execute(
            delete(SessionModel)
            .where(SessionModel.token == token)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_user_sessions(self, user_id: int) -> int:
        result = await self._session.execute(
            delete(SessionModel)
            .where(SessionModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(SessionModel)
            .where(SessionModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _model_to_entity(self, model: SessionModel) -> Session:
        return Session(
            id=model.id,
            session_id=model.session_id,
            user_id=model.user_id,
            token=model.token,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            expires_at=model.expires_at,
            created_at=model.created_at,
        )
