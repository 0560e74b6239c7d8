"""Authentication exceptions."""

from datetime import datetime
from typing import List, Optional

from director_auth.core.exceptions import DomainException


class AuthenticationException(DomainException):
    """Base exception for authentication errors."""

    status_code = 401


class InvalidCredentialsException(AuthenticationException):
    """
    Raised when login credentials are invalid.

    The message is identical for unknown identities and wrong passwords.
    """

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class NoTokenException(AuthenticationException):
    """Raised when a protected endpoint is called without credentials."""

    def __init__(self, message: str = "No token provided") -> None:
        super().__init__(message)


class InvalidTokenException(AuthenticationException):
    """Raised when token is invalid or malformed."""

    def __init__(self, reason: str = "Invalid token") -> None:
        super().__init__(reason)


class ExpiredTokenException(AuthenticationException):
    """Raised when an access token has expired."""

    def __init__(self) -> None:
        super().__init__("Token has expired")


class InvalidOrExpiredTokenException(AuthenticationException):
    """Raised when a persisted one-time or refresh token does not match."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidSessionException(AuthenticationException):
    """Raised when a session token is missing or expired."""

    def __init__(self, message: str = "Invalid or expired session") -> None:
        super().__init__(message)


class SessionNotFoundException(AuthenticationException):
    """Raised when extending a session that is gone or already expired."""

    def __init__(self) -> None:
        super().__init__("Session not found or already expired")


class IncorrectPasswordException(AuthenticationException):
    """Raised when a re-supplied current password does not match."""

    def __init__(self) -> None:
        super().__init__("Current password is incorrect")


class UserNotFoundException(AuthenticationException):
    """Raised when user is not found."""

    status_code = 404

    def __init__(self, identifier: str) -> None:
        super().__init__(f"User not found: {identifier}")
        self.identifier = identifier


class UserAlreadyExistsException(AuthenticationException):
    """Raised when trying to create user that already exists."""

    status_code = 400

    def __init__(self, field_name: str) -> None:
        super().__init__(f"User with this {field_name} already exists")
        self.field_name = field_name


class WeakPasswordException(AuthenticationException):
    """Raised when a password violates one or more strength rules."""

    status_code = 400

    def __init__(self, errors: List[str]) -> None:
        super().__init__("Password does not meet requirements", errors)
        self.errors = errors


class InvalidVerificationTokenException(AuthenticationException):
    """Raised when an email verification token does not match any user."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Invalid verification token")


class AccountLockedException(AuthenticationException):
    """Raised when logging into an account that is temporarily locked."""

    status_code = 403

    def __init__(self, locked_until: Optional[datetime] = None) -> None:
        super().__init__(
            "Account is locked. Please try again later.",
            locked_until.isoformat() if locked_until else None,
        )
        self.locked_until = locked_until


class InactiveUserException(AuthenticationException):
    """Raised when user account is inactive."""

    status_code = 403

    def __init__(self, username: str) -> None:
        super().__init__("Account is deactivated")
        self.username = username
