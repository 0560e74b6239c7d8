"""Refresh token repository implementation."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.core.auth.entities import RefreshToken
from director_auth.core.auth.interfaces import RefreshTokenRepositoryInterface
from director_auth.infrastructure.database.models import RefreshTokenModel


class SqlRefreshTokenRepository(RefreshTokenRepositoryInterface):
    """SQLAlchemy implementation of refresh token repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize refresh token repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_valid_refresh_token(self, token: str, now: datetime) -> Optional[RefreshToken]:
        """
        Get an unexpired refresh token by token string.

        Args:
            token: Refresh token string
            now: Reference time for the expiry comparison

        Returns:
            RefreshToken entity if found and live, None otherwise
        """
        result = await self._session.execute(
            select(RefreshTokenModel).where(
                RefreshTokenModel.token == token,
                RefreshTokenModel.expires_at > now,
            )
        )
        token_model = result.scalar_one_or_none()

        if token_model:
            return self._model_to_entity(token_model)
        return None

    async def save_refresh_token(self, refresh_token: RefreshToken) -> RefreshToken:
        """
        Save new refresh token.

        Args:
            refresh_token: RefreshToken entity to save

        Returns:
            Created RefreshToken entity
        """
        token_model = RefreshTokenModel(
            user_id=refresh_token.user_id,
            token=refresh_token.token,
            expires_at=refresh_token.expires_at,
        )

        self._session.add(token_model)
        await self._session.flush()
        return self._model_to_entity(token_model)

    async def delete_refresh_token(self, token: str) -> bool:
        """
        Delete a refresh token. Deleting a missing token is a no-op.

        Returns:
            True if a row was removed
        """
        result = await self._session.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.token == token)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_user_tokens(self, user_id: int) -> int:
        """
        Delete all refresh tokens for a user.

        Returns:
            Number of tokens removed
        """
        result = await self._session.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        """
        Remove expired refresh tokens.

        A single delete-where-expired statement, safe to run alongside live
        traffic.

        Returns:
            Number of tokens removed
        """
        result = await self._session.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _model_to_entity(self, model: RefreshTokenModel) -> RefreshToken:
        return RefreshToken(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            expires_at=model.expires_at,
            created_at=model.created_at,
        )
