"""Lifecycle hooks for queue task execution."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from trainhub.core.logging import LogContext, build_log_event


def before_task(task_name: str, training_id: int | None = None, trace_id: str | None = None) -> dict[str, Any]:
    """Build pre-task log payload."""
    return build_log_event(
        event="task.start",
        context=LogContext(training_id=training_id, actor="SYSTEM", trace_id=trace_id),
        task_name=task_name,
    )


def after_task(
    task_name: str,
    status: str,
    training_id: int | None = None,
    trace_id: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build post-task log payload."""
    return build_log_event(
        event="task.finish",
        context=LogContext(training_id=training_id, actor="SYSTEM", trace_id=trace_id),
        task_name=task_name,
        status=status,
        finished_at=datetime.now(timezone.utc).isoformat(),
        **fields,
    )
