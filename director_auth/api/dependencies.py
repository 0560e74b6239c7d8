"""FastAPI dependency injection setup."""

from dataclasses import dataclass, replace
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends, Query, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.core.auth.entities import Session, User
from director_auth.core.auth.exceptions import (
    AuthenticationException,
    InvalidSessionException,
    InvalidTokenException,
    NoTokenException,
    UserNotFoundException,
)
from director_auth.core.auth.interfaces import (
    PasswordResetNotifierInterface,
    RateLimiterInterface,
)
from director_auth.core.auth.security import extract_bearer_token
from director_auth.core.auth.services import AuthenticationService, PasswordService, TokenService
from director_auth.core.domain.enums import UserRole
from director_auth.core.exceptions import ForbiddenException, RateLimitExceededException
from director_auth.infrastructure.cache.rate_limiter import build_rate_limiter
from director_auth.infrastructure.database.repositories.audit_log_repository import SqlAuditLogRepository
from director_auth.infrastructure.database.repositories.refresh_token_repository import SqlRefreshTokenRepository
from director_auth.infrastructure.database.repositories.session_repository import SqlSessionRepository
from director_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from director_auth.infrastructure.database.session import session_scope
from director_auth.infrastructure.notifications.password_reset import LoggingPasswordResetNotifier

security = HTTPBearer(auto_error=False)

_password_service: Optional[PasswordService] = None
_reset_notifier: Optional[PasswordResetNotifierInterface] = None


@dataclass(frozen=True)
class RequestMeta:
    """Client details recorded in the audit log."""

    ip_address: Optional[str]
    user_agent: Optional[str]


@dataclass(frozen=True)
class SessionContext:
    """Owner and state of a verified, freshly extended session."""

    user: User
    session: Session


async def get_database_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide database session for dependency injection.

    Yields:
        AsyncSession: Database session
    """
    async with session_scope() as session:
        yield session


def get_password_service() -> PasswordService:
    # Stateless, shared across requests
    global _password_service
    if _password_service is None:
        _password_service = PasswordService()
    return _password_service


async def get_token_service(
    session: AsyncSession = Depends(get_database_session),
) -> TokenService:
    return TokenService(SqlRefreshTokenRepository(session), SqlSessionRepository(session))


async def get_auth_service(
    session: AsyncSession = Depends(get_database_session),
    password_service: PasswordService = Depends(get_password_service),
    token_service: TokenService = Depends(get_token_service),
) -> AuthenticationService:
    """
    Provide authentication service for dependency injection.

    A new service is built per request so repositories never outlive the
    request's database session.

    Args:
        session: Database session
        password_service: Password hashing service
        token_service: Token service bound to the same session

    Returns:
        AuthenticationService: Authentication service instance
    """
    return AuthenticationService(
        SqlUserRepository(session),
        SqlAuditLogRepository(session),
        password_service,
        token_service,
    )


def get_reset_notifier() -> PasswordResetNotifierInterface:
    global _reset_notifier
    if _reset_notifier is None:
        _reset_notifier = LoggingPasswordResetNotifier()
    return _reset_notifier


def get_rate_limiter(request: Request) -> RateLimiterInterface:
    """Return the application-wide limiter, creating it on first use."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def get_client_ip(request: Request) -> Optional[str]:
    """First ``X-Forwarded-For`` hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


async def auth_rate_limit(
    request: Request,
    response: Response,
    limiter: RateLimiterInterface = Depends(get_rate_limiter),
) -> None:
    """
    Count the request against the caller's authentication budget.

    Raises:
        RateLimitExceededException: When the window's budget is spent
    """
    key = get_client_ip(request) or "unknown"
    decision = await limiter.check_and_increment(key)
    if not decision.allowed:
        raise RateLimitExceededException(decision.retry_after)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)


def get_bearer_token(
    request: Request,
    _scheme: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``; ``security`` only documents the scheme."""
    return extract_bearer_token(request.headers.get("authorization"))


async def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        token: Bearer token from the Authorization header
        auth_service: Authentication service

    Returns:
        User: Current authenticated user

    Raises:
        NoTokenException: If no bearer token was sent
        InvalidTokenException: If token is invalid or its user no longer exists
        ExpiredTokenException: If token has expired
        InactiveUserException: If the account is deactivated
    """
    if not token:
        raise NoTokenException()

    try:
        return await auth_service.get_current_user(token)
    except UserNotFoundException:
        raise InvalidTokenException("User not found")


async def get_optional_user(
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> Optional[User]:
    """
    Get current user if a valid token is provided.

    Returns:
        User or None: Current user if authenticated, None otherwise
    """
    if not token:
        return None

    try:
        return await auth_service.get_current_user(token)
    except AuthenticationException:
        return None


async def get_session_context(
    request: Request,
    session_token: Optional[str] = Query(None),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> SessionContext:
    """
    Authenticate by session token and slide the session's expiry.

    The token is read from the ``X-Session-Token`` header, falling back to
    the ``session_token`` query parameter.

    Raises:
        NoTokenException: If no session token was sent
        InvalidSessionException: If the session is unknown, expired or its
            owner is gone or deactivated
    """
    token = request.headers.get("x-session-token") or session_token
    if not token:
        raise NoTokenException("No session token provided")

    token_service = auth_service.token_service
    session = await token_service.verify_session(token)

    user = await auth_service.get_user(session.user_id)
    if not user or not user.is_active:
        raise InvalidSessionException()

    expires_at = await token_service.extend_session(token)
    return SessionContext(user=user, session=replace(session, expires_at=expires_at))


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency admitting only users holding one of ``roles``.

    Example:
        ``Depends(require_roles(UserRole.ADMIN))``
    """

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenException()
        return current_user

    return checker

