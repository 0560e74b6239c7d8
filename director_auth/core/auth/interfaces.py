"""Authentication service interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .entities import AuditLogEntry, RefreshToken, Session, User


class PasswordServiceInterface(ABC):
    """Interface for password hashing and verification."""

    @abstractmethod
    def hash_password(self, password: str) -> str:
        """
        Hash a password securely.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        pass

    @abstractmethod
    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify password against hash.

        Args:
            password: Plain text password
            hashed_password: Stored password hash

        Returns:
            True if password matches, False otherwise
        """
        pass


class UserRepositoryInterface(ABC):
    """Interface for user data access operations."""

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User identifier

        Returns:
            User entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username, case-insensitively."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email, case-insensitively."""
        pass

    @abstractmethod
    async def get_user_by_verification_token(self, token: str) -> Optional[User]:
        """Get user holding an exact verification token."""
        pass

    @abstractmethod
    async def get_user_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        """
        Get user whose reset token matches and has not expired.

        Args:
            token: Reset token presented by the client
            now: Reference time for the expiry comparison

        Returns:
            User entity if both conditions hold, None otherwise
        """
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def update_profile(self, user_id: int, **fields) -> Optional[User]:
        """Update profile columns and return the refreshed user."""
        pass

    @abstractmethod
    async def increment_failed_attempts(
        self, user_id: int, max_attempts: int, lock_until: datetime
    ) -> Optional[User]:
        """
        Atomically count a failed login.

        When the incremented counter reaches ``max_attempts`` the same
        statement sets ``locked_until`` to ``lock_until``.

        Returns:
            The refreshed user entity
        """
        pass

    @abstractmethod
    async def reset_failed_attempts(self, user_id: int, login_at: datetime) -> Optional[User]:
        """Clear the failure counter and lock, stamping the login time."""
        pass

    @abstractmethod
    async def update_password(
        self, user_id: int, hashed_password: str, clear_lockout: bool = False
    ) -> None:
        """
        Store a new password hash and clear any pending reset token.

        With ``clear_lockout`` the failure counter and lock are reset too.
        """
        pass

    @abstractmethod
    async def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        """Persist a password reset token with its absolute expiry."""
        pass

    @abstractmethod
    async def mark_verified(self, user_id: int) -> None:
        """Set the verified flag and clear the verification token."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """
        Delete user by ID.

        Args:
            user_id: User identifier

        Returns:
            True if user was deleted, False if not found
        """
        pass


class RefreshTokenRepositoryInterface(ABC):
    """Interface for refresh token data access operations."""

    @abstractmethod
    async def save_refresh_token(self, token: RefreshToken) -> RefreshToken:
        """
        Save refresh token.

        Args:
            token: Refresh token entity

        Returns:
            Saved refresh token with ID
        """
        pass

    @abstractmethod
    async def get_valid_refresh_token(self, token: str, now: datetime) -> Optional[RefreshToken]:
        """Get a refresh token that matches and has not expired."""
        pass

    @abstractmethod
    async def delete_refresh_token(self, token: str) -> bool:
        """Delete one refresh token; returns whether a row was removed."""
        pass

    @abstractmethod
    async def delete_user_tokens(self, user_id: int) -> int:
        """Delete every refresh token of a user; returns the row count."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete refresh tokens whose expiry has passed."""
        pass


class SessionRepositoryInterface(ABC):
    """Interface for session data access operations."""

    @abstractmethod
    async def save_session(self, session: Session) -> Session:
        pass

    @abstractmethod
    async def get_valid_session(self, token: str, now: datetime) -> Optional[Session]:
        pass

    @abstractmethod
    async def extend_session(self, token: str, expires_at: datetime, now: datetime) -> bool:
        """
        Push a live session's expiry forward.

        Returns:
            False when no unexpired session matches the token
        """
        pass

    @abstractmethod
    async def delete_session(self, token: str) -> bool:
        pass

    @abstractmethod
    async def delete_user_sessions(self, user_id: int) -> int:
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        pass


class AuditLogRepositoryInterface(ABC):
    """Interface for the append-only audit log."""

    @abstractmethod
    async def add_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        pass

    @abstractmethod
    async def list_entries(
        self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> List[AuditLogEntry]:
        pass


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limiter check."""

    allowed: bool
    remaining: int
    retry_after: int


class RateLimiterInterface(ABC):
    """Interface for keyed request rate limiting."""

    @abstractmethod
    async def check_and_increment(self, key: str) -> RateLimitDecision:
        """
        Count a request for ``key`` and decide whether it is allowed.

        Args:
            key: Client key, usually the client IP

        Returns:
            Decision with remaining budget and seconds until reset
        """
        pass

    @abstractmethod
    async def cleanup(self) -> int:
        """Drop windows that have lapsed; returns how many were removed."""
        pass


class PasswordResetNotifierInterface(ABC):
    """Delivers password reset tokens to account owners out of band."""

    @abstractmethod
    async def send_password_reset(self, user: User, token: str) -> None:
        pass
