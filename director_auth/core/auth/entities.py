"""Authentication domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from director_auth.core.domain.enums import AuditAction, UserRole
from director_auth.utils.clock import utcnow


@dataclass(frozen=True)
class User:
    """
    User entity for authentication.

    Attributes:
        id: Unique user identifier
        username: Unique username (stored lower-cased)
        email: Unique email address (stored lower-cased)
        hashed_password: Securely hashed password
        first_name: Optional given name
        last_name: Optional family name
        role: Account role
        is_active: Whether user account is active
        is_verified: Whether the email address has been verified
        verification_token: One-time email verification token
        reset_token: One-time password reset token
        reset_token_expires_at: Absolute expiry of the reset token
        failed_login_attempts: Consecutive failed logins
        locked_until: Lockout expiry, if the account is locked
        last_login_at: Timestamp of the last successful login
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: int
    username: str
    email: str
    hashed_password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    is_verified: bool = False
    verification_token: Optional[str] = None
    reset_token: Optional[str] = None
    reset_token_expires_at: Optional[datetime] = None
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate user data after initialization."""
        if not self.username:
            raise ValueError("Username cannot be empty")
        if not self.email:
            raise ValueError("Email cannot be empty")
        if not self.hashed_password:
            raise ValueError("Hashed password cannot be empty")
        if "@" not in self.email:
            raise ValueError("Invalid email format")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the account is currently locked.

        A lock lapses purely by wall-clock comparison; no unlock step is
        needed.
        """
        now = now or utcnow()
        return self.locked_until is not None and self.locked_until > now


@dataclass(frozen=True)
class RefreshToken:
    """
    Refresh token entity for token management.

    Attributes:
        id: Unique token identifier
        user_id: User ID this token belongs to
        token: The opaque refresh token string
        expires_at: Token expiration timestamp
        created_at: Token creation timestamp
    """

    id: Optional[int]
    user_id: int
    token: str
    expires_at: datetime
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate refresh token data."""
        if not self.token:
            raise ValueError("Token cannot be empty")
        if self.user_id <= 0:
            raise ValueError("User ID must be positive")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if refresh token is expired."""
        return (now or utcnow()) >= self.expires_at


@dataclass(frozen=True)
class Session:
    """
    Persisted sliding-expiration session.

    Attributes:
        id: Row identifier
        session_id: Public opaque session identifier
        user_id: Owning user
        token: Opaque session token presented by clients
        ip_address: Client address at creation
        user_agent: Client user agent at creation
        expires_at: Current expiry, pushed forward on each use
        created_at: Creation timestamp
    """

    id: Optional[int]
    session_id: str
    user_id: int
    token: str
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only record of an authentication event."""

    id: Optional[int]
    user_id: Optional[int]
    action: AuditAction
    entity_type: str = "authentication"
    entity_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TokenPair:
    """
    Access and refresh token pair.

    Attributes:
        access_token: JWT access token
        refresh_token: Opaque refresh token string
        token_type: Token type (typically "bearer")
        expires_in: Access token expiration time in seconds
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 900

    def __post_init__(self) -> None:
        """Validate token pair data."""
        if not self.access_token:
            raise ValueError("Access token cannot be empty")
        if not self.refresh_token:
            raise ValueError("Refresh token cannot be empty")


@dataclass(frozen=True)
class TokenPayload:
    """
    Decoded access token claims.

    Attributes:
        sub: Subject (user ID)
        email: User email
        username: Username
        role: User role
        exp: Expiration timestamp
        iat: Issued at timestamp
        token_type: Type of token
    """

    sub: str
    email: str
    username: str
    role: str
    exp: int
    iat: int
    token_type: str = "access"

    def __post_init__(self) -> None:
        """Validate token payload data."""
        if not self.sub:
            raise ValueError("Subject cannot be empty")
        if not self.username:
            raise ValueError("Username cannot be empty")
        if self.exp <= self.iat:
            raise ValueError("Expiration must be after issued time")

    @property
    def user_id(self) -> int:
        return int(self.sub)


@dataclass(frozen=True)
class PasswordStrength:
    """Outcome of a password strength check with every violated rule."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class RegistrationResult:
    user: User
    tokens: TokenPair
    verification_token: str


@dataclass(frozen=True)
class CleanupResult:
    """Rows removed by an expired-token sweep."""

    refresh_tokens: int
    sessions: int
