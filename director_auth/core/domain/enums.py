"""Domain enums for the authentication service."""

from enum import Enum


class UserRole(str, Enum):
    """Roles a user account can hold."""

    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""

    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFIED = "email_verified"
    PASSWORD_CHANGED = "password_changed"
    TOKENS_REVOKED = "tokens_revoked"
    SESSION_CREATED = "session_created"
    SESSION_ENDED = "session_ended"
