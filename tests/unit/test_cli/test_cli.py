"""Tests for the command line interface."""

from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from director_auth import cli as cli_module
from director_auth.core.auth.entities import CleanupResult, User
from director_auth.core.auth.exceptions import WeakPasswordException
from director_auth.core.domain.enums import UserRole


@pytest.fixture
def runner():
    return CliRunner()


def make_admin() -> User:
    return User(
        id=7,
        email="root@example.com",
        username="root",
        hashed_password="hashed",
        role=UserRole.ADMIN,
        is_verified=True,
    )


def test_show_config(runner):
    result = runner.invoke(cli_module.cli, ["show-config"])

    assert result.exit_code == 0
    assert "Environment: test" in result.output
    assert "Rate limit backend: memory" in result.output


def test_create_admin_with_generated_password(runner, monkeypatch):
    create = AsyncMock(return_value=(make_admin(), "verify"))
    monkeypatch.setattr(cli_module, "create_admin_user", create)

    result = runner.invoke(
        cli_module.cli, ["create-admin", "--email", "root@example.com", "--username", "root"]
    )

    assert result.exit_code == 0
    assert "Administrator root created (id=7)" in result.output
    assert "Generated password:" in result.output
    email, username, password, first_name, last_name = create.await_args.args
    assert (email, username) == ("root@example.com", "root")
    assert len(password) >= 12


def test_create_admin_reports_weak_password(runner, monkeypatch):
    errors = ["Password must contain at least one number"]
    monkeypatch.setattr(
        cli_module, "create_admin_user", AsyncMock(side_effect=WeakPasswordException(errors))
    )

    result = runner.invoke(
        cli_module.cli,
        ["create-admin", "--email", "root@example.com", "--username", "root", "--password", "x"],
    )

    assert result.exit_code == 1
    assert "Password does not meet requirements" in result.output
    assert errors[0] in result.output


def test_cleanup_tokens(runner, monkeypatch):
    monkeypatch.setattr(
        cli_module,
        "cleanup_expired_tokens",
        AsyncMock(return_value=CleanupResult(refresh_tokens=3, sessions=1)),
    )

    result = runner.invoke(cli_module.cli, ["cleanup-tokens"])

    assert result.exit_code == 0
    assert "Removed 3 refresh tokens and 1 sessions" in result.output
