"""Tests for password, input and token helpers."""

from director_auth.core.auth.security import (
    extract_bearer_token,
    generate_opaque_token,
    generate_random_password,
    sanitize_input,
    validate_password_strength,
)


class TestValidatePasswordStrength:
    """Test cases for password strength rules."""

    def test_strong_password(self):
        result = validate_password_strength("Str0ng!Pass")

        assert result.is_valid is True
        assert result.errors == []

    def test_reports_every_violation(self):
        """All violated rules are returned together."""
        result = validate_password_strength("abc")

        assert result.is_valid is False
        assert result.errors == [
            "Password must be at least 8 characters long",
            "Password must contain at least one uppercase letter",
            "Password must contain at least one number",
            "Password must contain at least one special character",
        ]

    def test_missing_lowercase(self):
        result = validate_password_strength("STR0NG!PASS")

        assert result.errors == ["Password must contain at least one lowercase letter"]

    def test_empty_password_fails_all_rules(self):
        assert len(validate_password_strength("").errors) == 5


class TestSanitizeInput:
    """Test cases for input sanitising."""

    def test_trims_and_strips_angle_brackets(self):
        assert sanitize_input("  <b>alice</b>  ") == "balice/b"

    def test_strips_nul_bytes(self):
        assert sanitize_input("ali\0ce") == "alice"

    def test_non_strings_pass_through(self):
        assert sanitize_input(None) is None
        assert sanitize_input(42) == 42


class TestTokenHelpers:

    def test_opaque_tokens_are_unique_and_url_safe(self):
        tokens = {generate_opaque_token() for _ in range(50)}

        assert len(tokens) == 50
        for token in tokens:
            assert len(token) >= 43
            assert all(c.isalnum() or c in "-_" for c in token)

    def test_random_password_is_strong(self):
        for _ in range(20):
            password = generate_random_password()
            assert len(password) == 12
            assert validate_password_strength(password).is_valid

    def test_random_password_respects_minimum_length(self):
        assert len(generate_random_password(4)) == 8

    def test_extract_bearer_token(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"
        assert extract_bearer_token("bearer abc.def") == "abc.def"
        assert extract_bearer_token("Basic abc") is None
        assert extract_bearer_token("Bearer ") is None
        assert extract_bearer_token(None) is None
