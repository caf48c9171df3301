"""Logging setup for the Tasks API process."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from tasks_api.core.settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Install a single stream handler at the configured level.

    Uvicorn's own loggers are left alone so its access log keeps working.
    """
    level = settings.log_level.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "tasks_api": {"handlers": ["console"], "level": level},
            },
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s", level)


def token_fingerprint(token: str | None) -> str:
    """Return a log-safe prefix of a CSRF token."""
    if not token:
        return "missing"
    return f"{token[:8]}..."
