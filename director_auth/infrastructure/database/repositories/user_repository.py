"""User repository implementation."""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.core.auth.entities import User
from director_auth.core.auth.exceptions import UserAlreadyExistsException
from director_auth.core.auth.interfaces import UserRepositoryInterface
from director_auth.core.domain.enums import UserRole
from director_auth.infrastructure.database.models import UserModel


class SqlUserRepository(UserRepositoryInterface):
    """SQLAlchemy implementation of user repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize user repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self._get_one(UserModel.id == user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self._get_one(func.lower(UserModel.username) == username.lower())

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return await self._get_one(func.lower(UserModel.email) == email.lower())

    async def get_user_by_verification_token(self, token: str) -> Optional[User]:
        return await self._get_one(UserModel.verification_token == token)

    async def get_user_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        """
        Get user by reset token.

        Both the token match and the expiry are part of the query, so an
        expired but matching token finds nothing.
        """
        return await self._get_one(
            UserModel.reset_token == token,
            UserModel.reset_token_expires_at > now,
        )

    async def create_user(self, user: User) -> User:
        """
        Create new user.

        Args:
            user: User entity to create

        Returns:
            Created user entity with ID

        Raises:
            UserAlreadyExistsException: If username or email already exists
        """
        user_model = UserModel(
            email=user.email.lower(),
            username=user.username.lower(),
            hashed_password=user.hashed_password,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role.value,
            is_active=user.is_active,
            is_verified=user.is_verified,
            verification_token=user.verification_token,
        )

        try:
            self._session.add(user_model)
            await self._session.flush()
            await self._session.refresh(user_model)
            return self._model_to_entity(user_model)
        except IntegrityError:
            await self._session.rollback()
            raise UserAlreadyExistsException("email or username")

    async def update_profile(self, user_id: int, **fields) -> Optional[User]:
        """
        Update profile columns.

        Raises:
            UserAlreadyExistsException: If the new email or username is taken
        """
        if fields:
            try:
                await self._update(user_id, **fields)
            except IntegrityError:
                await self._session.rollback()
                raise UserAlreadyExistsException("email or username")
        return await self.get_user_by_id(user_id)

    async def increment_failed_attempts(
        self, user_id: int, max_attempts: int, lock_until: datetime
    ) -> Optional[User]:
        """
        Count a failed login in one UPDATE statement.

        The new counter and the lock are computed from the row's current
        value inside the database, so concurrent failures cannot lose counts.
        """
        new_count = UserModel.failed_login_attempts + 1
        await self._update(
            user_id,
            failed_login_attempts=new_count,
            locked_until=case(
                (new_count >= max_attempts, lock_until),
                else_=UserModel.locked_until,
            ),
        )
        return await self.get_user_by_id(user_id)

    async def reset_failed_attempts(self, user_id: int, login_at: datetime) -> Optional[User]:
        await self._update(
            user_id,
            failed_login_attempts=0,
            locked_until=None,
            last_login_at=login_at,
        )
        return await self.get_user_by_id(user_id)

    async def update_password(
        self, user_id: int, hashed_password: str, clear_lockout: bool = False
    ) -> None:
        values = dict(
            hashed_password=hashed_password,
            reset_token=None,
            reset_token_expires_at=None,
        )
        if clear_lockout:
            values.update(failed_login_attempts=0, locked_until=None)
        await self._update(user_id, **values)

    async def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        await self._update(user_id, reset_token=token, reset_token_expires_at=expires_at)

    async def mark_verified(self, user_id: int) -> None:
        await self._update(user_id, is_verified=True, verification_token=None)

    async def set_active(self, user_id: int, is_active: bool) -> None:
        await self._update(user_id, is_active=is_active)

    async def delete_user(self, user_id: int) -> bool:
        """
        Delete user by ID.

        Refresh tokens and sessions cascade; audit entries keep a NULL user.

        Returns:
            True if user was deleted, False if not found
        """
        result = await self._session.execute(
            delete(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def _get_one(self, *criteria) -> Optional[User]:
        result = await self._session.execute(
            select(UserModel)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        user_model = result.scalar_one_or_none()

        if user_model:
            return self._model_to_entity(user_model)
        return None

    async def _update(self, user_id: int, **values) -> int:
        result = await self._session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _model_to_entity(self, model: UserModel) -> User:
        """
        Convert database model to domain entity.

        Args:
            model: User database model

        Returns:
            User domain entity
        """
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            hashed_password=model.hashed_password,
            first_name=model.first_name,
            last_name=model.last_name,
            role=UserRole(model.role),
            is_active=model.is_active,
            is_verified=model.is_verified,
            verification_token=model.verification_token,
            reset_token=model.reset_token,
            reset_token_expires_at=model.reset_token_expires_at,
            failed_login_attempts=model.failed_login_attempts,
            locked_until=model.locked_until,
            last_login_at=model.last_login_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
