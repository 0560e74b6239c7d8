"""Tests for the housekeeping Celery tasks."""

from unittest.mock import AsyncMock

from director_auth.core.auth.entities import CleanupResult
from director_auth.infrastructure.tasks import maintenance_tasks
from director_auth.infrastructure.tasks.celery_app import celery_app


def test_beat_schedule_runs_token_cleanup():
    entry = celery_app.conf.beat_schedule["cleanup-expired-tokens"]

    assert entry["task"] == maintenance_tasks.cleanup_expired_tokens.name


def test_cleanup_expired_tokens_completed(monkeypatch):
    monkeypatch.setattr(
        maintenance_tasks,
        "cleanup_expired_tokens_async",
        AsyncMock(return_value=CleanupResult(refresh_tokens=4, sessions=2)),
    )

    result = maintenance_tasks.cleanup_expired_tokens()

    assert result["status"] == "COMPLETED"
    assert result["refresh_tokens_removed"] == 4
    assert result["sessions_removed"] == 2


def test_cleanup_expired_tokens_failed(monkeypatch):
    monkeypatch.setattr(
        maintenance_tasks,
        "cleanup_expired_tokens_async",
        AsyncMock(side_effect=RuntimeError("database is locked")),
    )

    result = maintenance_tasks.cleanup_expired_tokens()

    assert result["status"] == "FAILED"
    assert result["error"] == "database is locked"


def test_check_database(monkeypatch):
    monkeypatch.setattr(
        maintenance_tasks, "check_database_health", AsyncMock(return_value=False)
    )

    assert maintenance_tasks.check_database()["status"] == "UNHEALTHY"
