"""Password, input and token helpers used by the authentication services."""

import re
import secrets
import string
from typing import Any, Optional

from director_auth.core.exceptions import ValidationException

from .entities import PasswordStrength

MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3

_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"|,.<>/?"
_SYMBOL_RE = re.compile("[" + re.escape(_SYMBOLS) + "]")

_RANDOM_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()_+-="


def validate_password_strength(password: str) -> PasswordStrength:
    """
    Check a password against every strength rule.

    All violated rules are collected so a client can render the whole
    checklist at once.

    Args:
        password: Plain text password

    Returns:
        PasswordStrength with ``is_valid`` and the list of violations
    """
    errors = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not _SYMBOL_RE.search(password):
        errors.append("Password must contain at least one special character")

    return PasswordStrength(is_valid=not errors, errors=errors)


def sanitize_input(value: Any) -> Any:
    """
    Trim a string and strip NUL bytes and angle brackets.

    This is a blunt filter, not context-aware HTML escaping; output still has
    to be escaped where it is rendered. Non-string values pass through.
    """
    if not isinstance(value, str):
        return value

    value = value.strip()
    value = value.replace("\0", "")
    return re.sub(r"[<>]", "", value)


def normalize_username(value: str) -> str:
    """
    Sanitise and lower-case a username.

    The length rule is checked on the sanitised value, since stripping can
    shorten input that passed request validation.

    Raises:
        ValidationException: If fewer than ``MIN_USERNAME_LENGTH`` characters remain
    """
    username = sanitize_input(value).strip().lower()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationException(
            f"Username must be at least {MIN_USERNAME_LENGTH} characters long"
        )
    return username


def normalize_email(value: str) -> str:
    """
    Sanitise and lower-case an email address.

    Raises:
        ValidationException: If no local part or domain remains
    """
    email = sanitize_input(value).strip().lower()
    local, _, domain = email.partition("@")
    if not local or not domain:
        raise ValidationException("Invalid email address")
    return email


def generate_opaque_token() -> str:
    """Generate a URL-safe token from the OS CSPRNG."""
    return secrets.token_urlsafe(32)


def generate_random_password(length: int = 12) -> str:
    """
    Generate a random password that satisfies the strength rules.

    Args:
        length: Desired length, at least the minimum password length
    """
    length = max(length, MIN_PASSWORD_LENGTH)
    while True:
        candidate = "".join(secrets.choice(_RANDOM_PASSWORD_ALPHABET) for _ in range(length))
        if validate_password_strength(candidate).is_valid:
            return candidate


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of a ``Bearer <token>`` header value; the scheme is case-insensitive."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
