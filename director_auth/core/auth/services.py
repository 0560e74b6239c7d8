"""Authentication service implementations."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from director_auth.core.domain.enums import AuditAction, UserRole
from director_auth.settings import Settings, get_settings
from director_auth.utils.async_helpers import sync_to_async
from director_auth.utils.clock import utcnow
from .entities import (
    AuditLogEntry,
    CleanupResult,
    LoginResult,
    RefreshToken,
    RegistrationResult,
    Session,
    TokenPair,
    TokenPayload,
    User,
)
from .exceptions import (
    AccountLockedException,
    ExpiredTokenException,
    IncorrectPasswordException,
    InactiveUserException,
    InvalidCredentialsException,
    InvalidOrExpiredTokenException,
    InvalidSessionException,
    InvalidTokenException,
    InvalidVerificationTokenException,
    SessionNotFoundException,
    UserAlreadyExistsException,
    UserNotFoundException,
    WeakPasswordException,
)
from .interfaces import (
    AuditLogRepositoryInterface,
    PasswordServiceInterface,
    RefreshTokenRepositoryInterface,
    SessionRepositoryInterface,
    UserRepositoryInterface,
)
from .security import (
    generate_opaque_token,
    normalize_email,
    normalize_username,
    sanitize_input,
    validate_password_strength,
)

logger = logging.getLogger("director_auth.auth")

PROFILE_FIELDS = ("first_name", "last_name", "email", "username")


class PasswordService(PasswordServiceInterface):
    """
    BCrypt-based password hashing service.

    Provides secure password hashing and verification using bcrypt algorithm
    with configurable rounds for performance vs security balance. The async
    variants run in a worker thread so hashing does not block the event loop.
    """

    def __init__(self, rounds: Optional[int] = None) -> None:
        """
        Initialize password context with bcrypt.

        Args:
            rounds: bcrypt cost factor (defaults to settings)
        """
        rounds = rounds or get_settings().bcrypt_rounds
        self._pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash_password(self, password: str) -> str:
        """
        Hash a password securely using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        return self._pwd_context.hash(password)

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify password against bcrypt hash.

        Args:
            password: Plain text password
            hashed_password: Stored password hash

        Returns:
            True if password matches, False otherwise (including malformed hashes)
        """
        try:
            return self._pwd_context.verify(password, hashed_password)
        except (ValueError, TypeError):
            return False

    async def hash_password_async(self, password: str) -> str:
        return await sync_to_async(self.hash_password)(password)

    async def verify_password_async(self, password: str, hashed_password: str) -> bool:
        return await sync_to_async(self.verify_password)(password, hashed_password)


class TokenService:
    """
    Issues and verifies credentials.

    Access tokens are stateless HS256 JWTs; refresh tokens and sessions are
    opaque strings persisted through their repositories.
    """

    def __init__(
        self,
        refresh_token_repository: RefreshTokenRepositoryInterface,
        session_repository: SessionRepositoryInterface,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Initialize token service with repositories.

        Args:
            refresh_token_repository: Refresh token data access interface
            session_repository: Session data access interface
            settings: Application settings (defaults to cached settings)
        """
        self._settings = settings or get_settings()
        self._refresh_token_repository = refresh_token_repository
        self._session_repository = session_repository

        self._secret_key = self._settings.jwt_secret_key
        self._algorithm = self._settings.jwt_algorithm
        self._access_token_expire = timedelta(minutes=self._settings.access_token_expire_minutes)
        self._refresh_token_expire = timedelta(days=self._settings.refresh_token_expire_days)
        self._session_timeout = timedelta(minutes=self._settings.session_timeout_minutes)

    @property
    def access_token_expires_in(self) -> int:
        return int(self._access_token_expire.total_seconds())

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create JWT access token for user.

        Args:
            user: User entity
            expires_delta: Override of the configured lifetime

        Returns:
            JWT access token string
        """
        now = utcnow()
        expire = now + (expires_delta if expires_delta is not None else self._access_token_expire)

        payload = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "role": user.role.value,
            "type": "access",
            "iat": int((now - datetime(1970, 1, 1)).total_seconds()),
            "exp": int((expire - datetime(1970, 1, 1)).total_seconds()),
        }

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload:
        """
        Decode and validate JWT access token.

        Args:
            token: JWT token string

        Returns:
            Token payload data

        Raises:
            InvalidTokenException: If token is invalid, malformed or not an access token
            ExpiredTokenException: If token has expired
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise ExpiredTokenException()
        except JWTError as e:
            raise InvalidTokenException(f"Invalid token: {e}")

        if payload.get("type") != "access":
            raise InvalidTokenException("Invalid token type")

        try:
            return TokenPayload(
                sub=payload["sub"],
                email=payload["email"],
                username=payload["username"],
                role=payload["role"],
                exp=payload["exp"],
                iat=payload["iat"],
                token_type=payload["type"],
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenException("Invalid token claims")

    async def issue_refresh_token(self, user_id: int) -> str:
        """
        Generate and persist a refresh token.

        Args:
            user_id: Owning user

        Returns:
            Opaque refresh token string
        """
        token = generate_opaque_token()
        await self._refresh_token_repository.save_refresh_token(
            RefreshToken(
                id=None,
                user_id=user_id,
                token=token,
                expires_at=utcnow() + self._refresh_token_expire,
            )
        )
        return token

    async def create_token_pair(self, user: User) -> TokenPair:
        """
        Create access and refresh token pair for user.

        Args:
            user: User entity

        Returns:
            Token pair with access and refresh tokens
        """
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=await self.issue_refresh_token(user.id),
            expires_in=self.access_token_expires_in,
        )

    async def verify_refresh_token(self, token: str) -> RefreshToken:
        """
        Look up a live refresh token.

        Raises:
            InvalidOrExpiredTokenException: If no unexpired row matches
        """
        refresh_token = await self._refresh_token_repository.get_valid_refresh_token(
            token, utcnow()
        )
        if not refresh_token:
            raise InvalidOrExpiredTokenException("Invalid or expired refresh token")
        return refresh_token

    async def revoke_refresh_token(self, token: str) -> None:
        await self._refresh_token_repository.delete_refresh_token(token)

    async def revoke_all_user_tokens(self, user_id: int) -> Tuple[int, int]:
        """
        Delete every refresh token and session of a user.

        Returns:
            Counts of removed refresh tokens and sessions
        """
        tokens = await self._refresh_token_repository.delete_user_tokens(user_id)
        sessions = await self._session_repository.delete_user_sessions(user_id)
        logger.info(
            "Revoked credentials for user %s: %d refresh tokens, %d sessions",
            user_id, tokens, sessions,
        )
        return tokens, sessions

    async def create_session(
        self,
        user_id: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        """Persist a new session expiring after the configured timeout."""
        return await self._session_repository.save_session(
            Session(
                id=None,
                session_id=generate_opaque_token(),
                user_id=user_id,
                token=generate_opaque_token(),
                ip_address=ip_address,
                user_agent=user_agent,
                expires_at=utcnow() + self._session_timeout,
            )
        )

    async def verify_session(self, token: str) -> Session:
        """
        Raises:
            InvalidSessionException: If the session is missing or expired
        """
        session = await self._session_repository.get_valid_session(token, utcnow())
        if not session:
            raise InvalidSessionException()
        return session

    async def extend_session(self, token: str) -> datetime:
        """
        Slide a live session's expiry to now plus the session timeout.

        Expired sessions are never resurrected.

        Returns:
            The new expiry

        Raises:
            SessionNotFoundException: If the session is missing or already expired
        """
        now = utcnow()
        expires_at = now + self._session_timeout
        if not await self._session_repository.extend_session(token, expires_at, now):
            raise SessionNotFoundException()
        return expires_at

    async def revoke_session(self, token: str) -> None:
        await self._session_repository.delete_session(token)

    async def cleanup_expired_tokens(self) -> CleanupResult:
        """Delete refresh tokens and sessions whose expiry has passed."""
        now = utcnow()
        result = CleanupResult(
            refresh_tokens=await self._refresh_token_repository.delete_expired(now),
            sessions=await self._session_repository.delete_expired(now),
        )
        logger.info(
            "Expired token cleanup removed %d refresh tokens and %d sessions",
            result.refresh_tokens, result.sessions,
        )
        return result


class AuthenticationService:
    """
    High-level authentication service orchestrating account operations.

    Combines password verification, token management, user persistence and
    audit logging into the account lifecycle: registration, login with
    lockout, refresh, logout, password reset, email verification and
    password change.
    """

    def __init__(
        self,
        user_repository: UserRepositoryInterface,
        audit_repository: AuditLogRepositoryInterface,
        password_service: PasswordService,
        token_service: TokenService,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Initialize authentication service.

        Args:
            user_repository: User data access interface
            audit_repository: Audit log data access interface
            password_service: Password hashing service
            token_service: Token management service
            settings: Application settings (defaults to cached settings)
        """
        self._settings = settings or get_settings()
        self._user_repository = user_repository
        self._audit_repository = audit_repository
        self._password_service = password_service
        self._token_service = token_service

    @property
    def token_service(self) -> TokenService:
        return self._token_service

    async def register_user(
        self,
        email: str,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        role: UserRole = UserRole.USER,
    ) -> RegistrationResult:
        """
        Register new user account and log it in.

        Args:
            email: User email address
            username: Unique username
            password: Plain text password
            first_name: Optional given name
            last_name: Optional family name
            ip_address: Client address for the audit log
            user_agent: Client user agent for the audit log
            role: Account role

        Returns:
            Created user, its first token pair and the verification token

        Raises:
            ValidationException: If the sanitised email or username is unusable
            WeakPasswordException: If the password violates strength rules
            UserAlreadyExistsException: If username or email already exists
        """
        email = normalize_email(email)
        username = normalize_username(username)

        strength = validate_password_strength(password)
        if not strength.is_valid:
            raise WeakPasswordException(strength.errors)

        await self._ensure_identity_available(email, username)

        verification_token = generate_opaque_token()
        user = await self._user_repository.create_user(
            User(
                id=0,
                username=username,
                email=email,
                hashed_password=await self._password_service.hash_password_async(password),
                first_name=sanitize_input(first_name),
                last_name=sanitize_input(last_name),
                role=role,
                is_active=True,
                is_verified=False,
                verification_token=verification_token,
            )
        )

        tokens = await self._token_service.create_token_pair(user)
        await self._audit(user.id, AuditAction.REGISTER, ip_address, user_agent)
        logger.info("Registered user %s", user.id)

        return RegistrationResult(
            user=user, tokens=tokens, verification_token=verification_token
        )

    async def login(
        self,
        identifier: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResult:
        """
        Authenticate by email or username and issue tokens.

        The lock is checked before the password so that a correct guess made
        during a lockout still fails.

        Args:
            identifier: Email address or username
            password: Plain text password

        Returns:
            Authenticated user and token pair

        Raises:
            InvalidCredentialsException: Unknown identity or wrong password
            AccountLockedException: If the account is locked
            InactiveUserException: If the account is deactivated
        """
        user = await self._get_user_by_email_or_username(identifier)
        if not user:
            raise InvalidCredentialsException()

        now = utcnow()
        if user.is_locked(now):
            logger.warning("Login attempt on locked account %s", user.id)
            raise AccountLockedException(user.locked_until)

        if not await self._password_service.verify_password_async(password, user.hashed_password):
            updated = await self._user_repository.increment_failed_attempts(
                user.id,
                self._settings.max_login_attempts,
                now + timedelta(minutes=self._settings.lockout_minutes),
            )
            await self._audit(
                user.id, AuditAction.LOGIN_FAILED, ip_address, user_agent, success=False
            )
            if updated and updated.is_locked(now):
                logger.warning(
                    "Account %s locked after %d failed logins",
                    user.id, updated.failed_login_attempts,
                )
            raise InvalidCredentialsException()

        if not user.is_active:
            raise InactiveUserException(user.username)

        user = await self._user_repository.reset_failed_attempts(user.id, now) or user
        tokens = await self._token_service.create_token_pair(user)
        await self._audit(user.id, AuditAction.LOGIN, ip_address, user_agent)

        return LoginResult(user=user, tokens=tokens)

    async def logout(
        self,
        user: User,
        refresh_token: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Revoke exactly the given refresh token; other devices stay signed in."""
        if refresh_token:
            await self._token_service.revoke_refresh_token(refresh_token)
        await self._audit(user.id, AuditAction.LOGOUT, ip_address, user_agent)

    async def revoke_all_tokens(
        self,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Sign the user out on every device."""
        await self._token_service.revoke_all_user_tokens(user.id)
        await self._audit(user.id, AuditAction.TOKENS_REVOKED, ip_address, user_agent)

    async def refresh_access_token(self, refresh_token: str) -> Tuple[str, User]:
        """
        Exchange a refresh token for a new access token.

        The refresh token itself is not rotated and stays valid until expiry
        or revocation.

        Raises:
            InvalidOrExpiredTokenException: If the token or its owner is not usable
        """
        token = await self._token_service.verify_refresh_token(refresh_token)

        user = await self._user_repository.get_user_by_id(token.user_id)
        if not user or not user.is_active:
            raise InvalidOrExpiredTokenException("Invalid refresh token")

        return self._token_service.create_access_token(user), user

    async def forgot_password(
        self,
        email: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Start a password reset.

        Callers must answer identically whether or not the email exists.

        Returns:
            The user and the new reset token, or ``(None, None)``
        """
        user = await self._user_repository.get_user_by_email(sanitize_input(email).lower())
        if not user:
            logger.info("Password reset requested for unknown email")
            return None, None

        token = generate_opaque_token()
        await self._user_repository.set_reset_token(
            user.id,
            token,
            utcnow() + timedelta(minutes=self._settings.password_reset_expire_minutes),
        )
        await self._audit(user.id, AuditAction.PASSWORD_RESET_REQUESTED, ip_address, user_agent)
        logger.info("Password reset token issued for user %s", user.id)

        return user, token

    async def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Complete a password reset and sign the user out everywhere.

        Holding a valid reset token also lifts any login lockout.

        Raises:
            WeakPasswordException: If the new password violates strength rules
            InvalidOrExpiredTokenException: If the token does not match or expired
        """
        strength = validate_password_strength(new_password)
        if not strength.is_valid:
            raise WeakPasswordException(strength.errors)

        user = await self._user_repository.get_user_by_reset_token(token, utcnow())
        if not user:
            raise InvalidOrExpiredTokenException("Invalid or expired reset token")

        await self._user_repository.update_password(
            user.id, await self._password_service.hash_password_async(new_password),
            clear_lockout=True,
        )
        await self._token_service.revoke_all_user_tokens(user.id)
        await self._audit(user.id, AuditAction.PASSWORD_RESET, ip_address, user_agent)

    async def verify_email(
        self,
        token: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> User:
        """
        Consume a single-use verification token.

        Raises:
            InvalidVerificationTokenException: If no user holds the token
        """
        user = await self._user_repository.get_user_by_verification_token(token)
        if not user:
            raise InvalidVerificationTokenException()

        await self._user_repository.mark_verified(user.id)
        await self._audit(user.id, AuditAction.EMAIL_VERIFIED, ip_address, user_agent)
        return await self._user_repository.get_user_by_id(user.id) or user

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Change password after re-verifying the current one.

        Raises:
            IncorrectPasswordException: If the current password is wrong
            WeakPasswordException: If the new password violates strength rules
        """
        if not await self._password_service.verify_password_async(
            current_password, user.hashed_password
        ):
            raise IncorrectPasswordException()

        strength = validate_password_strength(new_password)
        if not strength.is_valid:
            raise WeakPasswordException(strength.errors)

        await self._user_repository.update_password(
            user.id, await self._password_service.hash_password_async(new_password)
        )
        await self._audit(user.id, AuditAction.PASSWORD_CHANGED, ip_address, user_agent)

    async def update_profile(self, user: User, changes: Dict[str, Any]) -> User:
        """
        Apply self-service profile changes.

        Only name, email and username can change here; role, activation and
        credentials are never touched.

        Raises:
            ValidationException: If the sanitised email or username is unusable
            UserAlreadyExistsException: If the new email or username is taken
        """
        fields = {
            name: sanitize_input(value)
            for name, value in changes.items()
            if name in PROFILE_FIELDS and value is not None
        }
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        if "username" in fields:
            fields["username"] = normalize_username(fields["username"])

        if "email" in fields and fields["email"] != user.email:
            if await self._user_repository.get_user_by_email(fields["email"]):
                raise UserAlreadyExistsException("email")
        if "username" in fields and fields["username"] != user.username:
            if await self._user_repository.get_user_by_username(fields["username"]):
                raise UserAlreadyExistsException("username")

        if not fields:
            return user

        updated = await self._user_repository.update_profile(user.id, **fields)
        if not updated:
            raise UserNotFoundException(str(user.id))
        return updated

    async def get_current_user(self, token: str) -> User:
        """
        Get current user from access token.

        Args:
            token: JWT access token

        Returns:
            Current user entity

        Raises:
            InvalidTokenException: If token is invalid
            ExpiredTokenException: If token has expired
            UserNotFoundException: If user not found
            InactiveUserException: If user is inactive
        """
        payload = self._token_service.decode_token(token)

        user = await self._user_repository.get_user_by_id(payload.user_id)
        if not user:
            raise UserNotFoundException(payload.sub)

        if not user.is_active:
            raise InactiveUserException(user.username)

        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._user_repository.get_user_by_id(user_id)

    async def list_audit_logs(
        self, user_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> List[AuditLogEntry]:
        return await self._audit_repository.list_entries(user_id=user_id, limit=limit, offset=offset)

    async def record_session_event(
        self,
        user_id: int,
        action: AuditAction,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        await self._audit(user_id, action, ip_address, user_agent, entity_type="session")

    async def _ensure_identity_available(self, email: str, username: str) -> None:
        if await self._user_repository.get_user_by_email(email):
            raise UserAlreadyExistsException("email")
        if await self._user_repository.get_user_by_username(username):
            raise UserAlreadyExistsException("username")

    async def _get_user_by_email_or_username(self, identifier: str) -> Optional[User]:
        """Resolve by email first, then by username."""
        identifier = sanitize_input(identifier).lower()
        return (
            await self._user_repository.get_user_by_email(identifier)
            or await self._user_repository.get_user_by_username(identifier)
        )

    async def _audit(
        self,
        user_id: Optional[int],
        action: AuditAction,
        ip_address: Optional[str],
        user_agent: Optional[str],
        success: bool = True,
        entity_type: str = "authentication",
    ) -> None:
        await self._audit_repository.add_entry(
            AuditLogEntry(
                id=None,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                ip_address=ip_address,
                user_agent=user_agent,
                success=success,
            )
        )
