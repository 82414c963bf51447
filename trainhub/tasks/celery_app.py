"""Celery application bootstrap."""

from __future__ import annotations

from celery import Celery

from trainhub.core.config import get_config

config = get_config()

celery_app = Celery(
    "trainhub",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["trainhub.tasks.settlement_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    beat_schedule={
        "settlement-retry-unsettled": {
            "task": "settlement.retry_unsettled",
            "schedule": float(config.SETTLEMENT_RETRY_INTERVAL_SECONDS),
        },
    },
)

# Local/dev: run tasks synchronously in the calling process.
if config.CELERY_TASK_ALWAYS_EAGER:
    celery_app.conf.task_always_eager = True
