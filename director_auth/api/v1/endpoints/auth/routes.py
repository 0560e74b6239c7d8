"""Authentication API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from director_auth.api.dependencies import (
    RequestMeta,
    SessionContext,
    auth_rate_limit,
    get_auth_service,
    get_current_user,
    get_request_meta,
    get_reset_notifier,
    get_session_context,
    require_roles,
)
from director_auth.core.auth.entities import User
from director_auth.core.auth.exceptions import InvalidOrExpiredTokenException
from director_auth.core.auth.interfaces import PasswordResetNotifierInterface
from director_auth.core.auth.services import AuthenticationService
from director_auth.core.domain.enums import AuditAction, UserRole
from director_auth.core.exceptions import ValidationException

from .schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    ChangePasswordRequest,
    CurrentSessionResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateResponse,
    RefreshResponse,
    RefreshTokenRequest,
    RegistrationResponse,
    ResetPasswordRequest,
    SessionCreatedResponse,
    SessionResponse,
    UpdateProfileRequest,
    UserLoginRequest,
    UserRegistrationRequest,
    UserResponse,
)

logger = logging.getLogger("director_auth.api")

router = APIRouter(prefix="/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"

UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"}}
RATE_LIMITED = {429: {"model": ErrorResponse, "description": "Too many requests"}}


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a new account and sign it in.",
    dependencies=[Depends(auth_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input, weak password or duplicate user"},
        **RATE_LIMITED,
    },
)
async def register_user(
    user_data: UserRegistrationRequest,
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> RegistrationResponse:
    """
    Register a new user account.

    Email and username must be unique (case-insensitive). The account starts
    unverified; the verification token is returned for delivery.
    """
    result = await auth_service.register_user(
        email=user_data.email,
        username=user_data.username,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return RegistrationResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        verification_token=result.verification_token,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate by email or username and return access and refresh tokens.",
    dependencies=[Depends(auth_rate_limit)],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account locked or deactivated"},
        **RATE_LIMITED,
    },
)
async def login(
    credentials: UserLoginRequest,
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> LoginResponse:
    """
    Authenticate user and return tokens.

    Unknown accounts and wrong passwords fail identically.
    """
    result = await auth_service.login(
        credentials.email_or_username,
        credentials.password,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return LoginResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        token_type=result.tokens.token_type,
        expires_in=result.tokens.expires_in,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Refresh access token",
    description="Use a refresh token to obtain a new access token.",
    dependencies=[Depends(auth_rate_limit)],
    responses={**UNAUTHORIZED, **RATE_LIMITED},
)
async def refresh_token(
    token_data: RefreshTokenRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> RefreshResponse:
    access_token, user = await auth_service.refresh_access_token(token_data.refresh_token)
    return RefreshResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request password reset",
    description="Send a reset link when the email belongs to an account.",
    dependencies=[Depends(auth_rate_limit)],
    responses={**RATE_LIMITED},
)
async def forgot_password(
    request_data: ForgotPasswordRequest,
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
    notifier: PasswordResetNotifierInterface = Depends(get_reset_notifier),
) -> MessageResponse:
    """
    Start a password reset.

    The response is the same whether or not the email is registered.
    """
    user, token = await auth_service.forgot_password(
        request_data.email,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    if user and token:
        await notifier.send_password_reset(user, token)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password",
    description="Set a new password using a reset token.",
    dependencies=[Depends(auth_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired token, or weak password"},
        **RATE_LIMITED,
    },
)
async def reset_password(
    reset_data: ResetPasswordRequest,
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    """Complete a password reset; all of the user's sessions are signed out."""
    try:
        await auth_service.reset_password(
            reset_data.token,
            reset_data.new_password,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
    except InvalidOrExpiredTokenException as e:
        raise ValidationException(e.message)
    return MessageResponse(message="Password reset successful")


@router.get(
    "/verify-email",
    response_model=MessageResponse,
    summary="Verify email address",
    dependencies=[Depends(auth_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid verification token"},
        **RATE_LIMITED,
    },
)
async def verify_email(
    token: str = Query(..., min_length=1, description="Email verification token"),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.verify_email(token, ip_address=meta.ip_address, user_agent=meta.user_agent)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Revoke the given refresh token. Other devices stay signed in.",
    responses={**UNAUTHORIZED},
)
async def logout(
    logout_data: Optional[LogoutRequest] = None,
    current_user: User = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.logout(
        current_user,
        logout_data.refresh_token if logout_data else None,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="Logout successful")


@router.post(
    "/revoke-all",
    response_model=MessageResponse,
    summary="Logout everywhere",
    description="Revoke all refresh tokens and sessions of the current user.",
    responses={**UNAUTHORIZED},
)
async def revoke_all_tokens(
    current_user: User = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.revoke_all_tokens(
        current_user, ip_address=meta.ip_address, user_agent=meta.user_agent
    )
    return MessageResponse(message="All tokens revoked successfully")


@router.get(
    "/me",
    response_model=ProfileResponse,
    summary="Get current user",
    responses={**UNAUTHORIZED},
)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    return ProfileResponse(user=UserResponse.model_validate(current_user))


@router.put(
    "/me",
    response_model=ProfileUpdateResponse,
    summary="Update current user",
    description="Update name, email or username. Role and activation cannot be changed here.",
    responses={
        400: {"model": ErrorResponse, "description": "Email or username already taken"},
        **UNAUTHORIZED,
    },
)
async def update_current_user(
    profile_data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ProfileUpdateResponse:
    user = await auth_service.update_profile(
        current_user, profile_data.model_dump(exclude_unset=True)
    )
    return ProfileUpdateResponse(user=UserResponse.model_validate(user))


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    responses={
        400: {"model": ErrorResponse, "description": "Weak new password"},
        401: {"model": ErrorResponse, "description": "Current password is incorrect"},
    },
)
async def change_password(
    password_data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.change_password(
        current_user,
        password_data.current_password,
        password_data.new_password,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a session",
    description="Create a server-side session with sliding expiry.",
    responses={**UNAUTHORIZED},
)
async def create_session(
    current_user: User = Depends(get_current_user),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> SessionCreatedResponse:
    session = await auth_service.token_service.create_session(
        current_user.id, meta.ip_address, meta.user_agent
    )
    await auth_service.record_session_event(
        current_user.id, AuditAction.SESSION_CREATED, meta.ip_address, meta.user_agent
    )
    return SessionCreatedResponse(
        session_id=session.session_id,
        session_token=session.token,
        expires_at=session.expires_at,
    )


@router.get(
    "/sessions/current",
    response_model=CurrentSessionResponse,
    summary="Get current session",
    description="Authenticate with X-Session-Token; each call extends the session.",
    responses={**UNAUTHORIZED},
)
async def get_current_session(
    context: SessionContext = Depends(get_session_context),
) -> CurrentSessionResponse:
    return CurrentSessionResponse(
        user=UserResponse.model_validate(context.user),
        session=SessionResponse.model_validate(context.session),
    )


@router.delete(
    "/sessions/current",
    response_model=MessageResponse,
    summary="End current session",
    responses={**UNAUTHORIZED},
)
async def end_current_session(
    context: SessionContext = Depends(get_session_context),
    meta: RequestMeta = Depends(get_request_meta),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.token_service.revoke_session(context.session.token)
    await auth_service.record_session_event(
        context.user.id, AuditAction.SESSION_ENDED, meta.ip_address, meta.user_agent
    )
    return MessageResponse(message="Session ended")


@router.get(
    "/audit-logs",
    response_model=AuditLogListResponse,
    summary="List audit log entries",
    description="Administrators only. Newest entries first.",
    responses={
        **UNAUTHORIZED,
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
    },
)
async def list_audit_logs(
    user_id: Optional[int] = Query(None, alias="userId", description="Filter by user"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> AuditLogListResponse:
    entries = await auth_service.list_audit_logs(user_id=user_id, limit=limit, offset=offset)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in entries],
        limit=limit,
        offset=offset,
    )
