"""Celery tasks for token and session housekeeping."""

import logging
from typing import Dict

from director_auth.infrastructure.database.init_db import (
    check_database_health,
    cleanup_expired_tokens as cleanup_expired_tokens_async,
)
from director_auth.infrastructure.tasks.celery_app import celery_app
from director_auth.utils.async_helpers import run_async
from director_auth.utils.clock import utcnow

logger = logging.getLogger("director_auth.tasks")


@celery_app.task
def cleanup_expired_tokens() -> Dict:
    """
    Remove expired refresh tokens and sessions.

    Returns:
        Cleanup result with counts of removed rows
    """
    try:
        result = run_async(cleanup_expired_tokens_async())
        logger.info(
            "Expired tokens cleaned up",
            extra={"refresh_tokens": result.refresh_tokens, "sessions": result.sessions},
        )
        return {
            "status": "COMPLETED",
            "refresh_tokens_removed": result.refresh_tokens,
            "sessions_removed": result.sessions,
            "completed_at": utcnow().isoformat(),
        }
    except Exception as e:
        logger.exception("Token cleanup failed")
        return {
            "status": "FAILED",
            "error": str(e),
            "failed_at": utcnow().isoformat(),
        }


@celery_app.task
def check_database() -> Dict:
    healthy = run_async(check_database_health())
    return {
        "status": "HEALTHY" if healthy else "UNHEALTHY",
        "checked_at": utcnow().isoformat(),
    }
