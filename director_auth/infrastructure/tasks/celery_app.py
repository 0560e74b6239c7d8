"""Celery application for scheduled maintenance."""

from celery import Celery
from celery.signals import setup_logging

from director_auth.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "director_auth",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["director_auth.infrastructure.tasks.maintenance_tasks"],
)

celery_app.conf.update(
    task_routes={
        "director_auth.infrastructure.tasks.maintenance_tasks.*": {"queue": "maintenance"},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    result_expires=3600,
    beat_schedule={
        "cleanup-expired-tokens": {
            "task": "director_auth.infrastructure.tasks.maintenance_tasks.cleanup_expired_tokens",
            "schedule": float(settings.token_cleanup_interval_seconds),
        },
        "check-database-health": {
            "task": "director_auth.infrastructure.tasks.maintenance_tasks.check_database",
            "schedule": 300.0,
        },
    },
)


@setup_logging.connect
def config_loggers(*args, **kwargs):
    """Route Celery logging through the application's configuration."""
    from director_auth.utils.logging import setup_logging as configure

    configure()
