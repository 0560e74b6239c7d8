"""Domain exceptions for the authentication service."""

from typing import Any, Optional


class DomainException(Exception):
    """
    Base exception for domain-related errors.

    Subclasses set ``status_code`` to the HTTP status the API layer answers
    with when the exception reaches the application's exception handler.
    """

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationException(DomainException):
    """Raised when input is malformed or missing."""

    status_code = 400


class NotFoundException(DomainException):
    """Raised when a requested resource does not exist."""

    status_code = 404


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an operation."""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class RateLimitExceededException(DomainException):
    """Raised when a client exceeds a request rate limit."""

    status_code = 429

    def __init__(self, retry_after: int) -> None:
        """
        Initialize rate limit exception.

        Args:
            retry_after: Seconds until the current window resets
        """
        super().__init__("Too many requests. Please try again later.")
        self.retry_after = retry_after
