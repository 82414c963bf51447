"""Startup checks for the API process: database, task queue, then logging of the result."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from trainhub.core.config import Config, get_config
from trainhub.core.exceptions import ConfigurationError
from trainhub.core.logging_config import configure_logging
from trainhub.database.db import get_active_database_url, verify_database_connection

logger = logging.getLogger(__name__)

SUPPORTED_BROKER_SCHEMES = frozenset({"redis", "rediss", "memory"})


def _check_database(config: Config) -> bool:
    database_ok = verify_database_connection()
    if not database_ok:
        if config.DB_CONNECTIVITY_REQUIRED:
            raise RuntimeError("Database connectivity check failed.")
        logger.warning(
            "startup.database.unreachable",
            extra={"event": "startup.database.unreachable", "env": config.ENV},
        )
    # SQLite serializes writers per file; concurrent negotiation needs a server database.
    if config.is_production and get_active_database_url().startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )
    return database_ok


def _check_task_queue(config: Config) -> str:
    """Validate the broker URL the settlement retry task is queued on."""
    scheme = urlparse(config.CELERY_BROKER_URL).scheme
    if scheme not in SUPPORTED_BROKER_SCHEMES:
        raise ConfigurationError(
            f"CELERY_BROKER_URL scheme '{scheme}' is not supported; use redis:// or memory://."
        )
    if config.is_production and (scheme == "memory" or config.CELERY_TASK_ALWAYS_EAGER):
        logger.warning(
            "startup.production.inline_task_queue",
            extra={
                "event": "startup.production.inline_task_queue",
                "broker_scheme": scheme,
                "task_always_eager": config.CELERY_TASK_ALWAYS_EAGER,
            },
        )
    return scheme


def validate_startup_config() -> None:
    """Fail fast on an unusable database or broker; log what was validated."""
    config = get_config()
    database_ok = _check_database(config)
    broker_scheme = _check_task_queue(config)
    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": get_active_database_url().split("://", 1)[0],
            "database_ok": database_ok,
            "broker_scheme": broker_scheme,
            "settlement_retry_interval_seconds": config.SETTLEMENT_RETRY_INTERVAL_SECONDS,
        },
    )


def bootstrap() -> None:
    configure_logging()
    validate_startup_config()
