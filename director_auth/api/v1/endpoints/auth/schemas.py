"""Authentication API schemas."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from director_auth.core.domain.enums import AuditAction, UserRole


class CamelModel(BaseModel):
    """Base schema speaking camelCase JSON while accepting snake_case too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserRegistrationRequest(CamelModel):
    """User registration request schema."""

    email: EmailStr = Field(
        ...,
        description="User email address",
        examples=["alice@example.com"],
    )
    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Username (3-50 characters)",
        examples=["alice"],
    )
    password: str = Field(
        ...,
        max_length=128,
        description="Password: 8+ characters with upper, lower, digit and symbol",
        examples=["Str0ng!Pass"],
    )
    first_name: Optional[str] = Field(None, max_length=100, examples=["Alice"])
    last_name: Optional[str] = Field(None, max_length=100, examples=["Smith"])


class UserLoginRequest(CamelModel):
    """User login request schema."""

    email_or_username: str = Field(
        ...,
        min_length=1,
        description="Email address or username",
        examples=["alice@example.com"],
    )
    password: str = Field(..., min_length=1, description="Password")


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = Field(
        None,
        description="Refresh token to revoke; other devices stay signed in",
    )


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=1, description="Account email address")


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, description="Password reset token")
    new_password: str = Field(..., max_length=128, description="New password")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., max_length=128, description="New password")


class UpdateProfileRequest(CamelModel):
    """
    Self-service profile update.

    Unknown fields such as ``role`` or ``isActive`` are ignored.
    """

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=50)


class UserResponse(CamelModel):
    """Public view of a user; secrets and hashes are never included."""

    id: int = Field(..., description="User unique identifier", examples=[1])
    email: str = Field(..., description="User email address")
    username: str = Field(..., description="Username")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str = Field("", description="First and last name joined")
    role: UserRole = Field(UserRole.USER, description="Account role")
    is_active: bool = Field(..., description="Whether user account is active")
    is_verified: bool = Field(..., description="Whether the email is verified")
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageResponse(CamelModel):
    message: str = Field(..., examples=["Logout successful"])


class RegistrationResponse(CamelModel):
    message: str = "User registered successfully"
    user: UserResponse
    access_token: str
    refresh_token: str
    verification_token: str = Field(
        ..., description="Email verification token (delivered by email in production)"
    )


class LoginResponse(CamelModel):
    message: str = "Login successful"
    user: UserResponse
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds", examples=[900])


class RefreshResponse(CamelModel):
    access_token: str
    user: UserResponse


class ProfileResponse(CamelModel):
    user: UserResponse


class ProfileUpdateResponse(CamelModel):
    message: str = "User updated successfully"
    user: UserResponse


class SessionCreatedResponse(CamelModel):
    session_id: str = Field(..., description="Public session identifier")
    session_token: str = Field(..., description="Token to send as X-Session-Token")
    expires_at: datetime


class SessionResponse(CamelModel):
    session_id: str
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None


class CurrentSessionResponse(CamelModel):
    user: UserResponse
    session: SessionResponse


class AuditLogResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    created_at: Optional[datetime] = None


class AuditLogListResponse(CamelModel):
    items: List[AuditLogResponse]
    limit: int
    offset: int


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str = Field(..., description="Error message", examples=["Invalid credentials"])
    type: str = Field(..., description="Error type", examples=["InvalidCredentialsException"])
    details: Optional[Any] = Field(None, description="Additional error details")
