"""Logging configuration utilities."""

import logging
from pathlib import Path
from typing import Dict, Any

from director_auth.settings import get_settings

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset({
    "password",
    "new_password",
    "current_password",
    "hashed_password",
    "token",
    "access_token",
    "refresh_token",
    "session_token",
    "reset_token",
    "verification_token",
})


class RedactSecretsFilter(logging.Filter):
    """
    Mask credential values passed through ``extra``.

    Messages themselves are left alone; callers never interpolate secrets
    into them, but structured fields are easy to pass along by accident.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for field in SENSITIVE_FIELDS:
            if getattr(record, field, None) is not None:
                setattr(record, field, REDACTED)
        return True


def _rotating_file(filename: Path, level: str, formatter: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["redact_secrets"],
        "filename": str(filename),
        "maxBytes": 10485760,
        "backupCount": 10,
    }


def get_logging_config() -> Dict[str, Any]:
    """
    Get logging configuration dictionary.

    Authentication events (``director_auth.auth``) are additionally written to
    ``security.log`` so lockouts and failed logins can be reviewed on their own.

    Returns:
        Logging configuration for dictConfig
    """
    settings = get_settings()
    level = settings.log_level
    formatter = "json" if settings.log_format == "json" else "standard"
    log_dir = Path(settings.log_dir)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact_secrets": {"()": RedactSecretsFilter},
        },
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "rename_fields": {"levelname": "level", "asctime": "timestamp"},
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": formatter,
                "filters": ["redact_secrets"],
                "stream": "ext://sys.stdout",
            },
            "file": _rotating_file(log_dir / "director_auth.log", level, formatter),
            "security_file": _rotating_file(log_dir / "security.log", "INFO", formatter),
            "celery_file": _rotating_file(log_dir / "celery.log", level, formatter),
        },
        "loggers": {
            "director_auth": {
                "level": level,
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "director_auth.auth": {
                "level": level,
                "handlers": ["security_file"],
                "propagate": True,
            },
            "celery": {
                "level": level,
                "handlers": ["console", "celery_file"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "passlib": {
                "level": "ERROR",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }


def setup_logging():
    """Setup logging configuration."""
    import logging.config

    Path(get_settings().log_dir).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(get_logging_config())

    logging.getLogger("director_auth").debug("Logging configured")
