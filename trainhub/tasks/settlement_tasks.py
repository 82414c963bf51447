"""Background settlement: retries invoicing for completed trainings."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from trainhub.core.exceptions import InvalidStateError, NotFoundError
from trainhub.database.db import get_db_session
from trainhub.services.settlement_service import SettlementService
from trainhub.tasks.celery_app import celery_app
from trainhub.tasks.hooks import after_task, before_task

logger = logging.getLogger(__name__)

RETRY_TASK_NAME = "settlement.retry_unsettled"
SETTLE_TASK_NAME = "settlement.settle_training"


def _invoice_summary(invoice) -> dict[str, Any] | None:
    if invoice is None:
        return None
    return {
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "training_request_id": invoice.training_request_id,
        "amount": invoice.amount,
    }


@celery_app.task(name=RETRY_TASK_NAME)
def retry_unsettled_trainings() -> dict[str, Any]:
    """Settle every completed training that still lacks its invoice.

    One failing training does not stop the sweep; it is reported and picked
    up again on the next beat.
    """
    trace_id = uuid.uuid4().hex
    logger.info("task.start", extra=before_task(RETRY_TASK_NAME, trace_id=trace_id))
    settled: list[dict[str, Any]] = []
    failed: list[dict[str, Any]] = []
    with get_db_session() as session:
        service = SettlementService(db=session)
        for training_id in service.find_unsettled_trainings():
            try:
                invoice = service.settle(training_id)
            except Exception as exc:
                logger.exception(
                    "settlement.retry_failed",
                    extra={"event": "settlement.retry_failed", "training_id": training_id},
                )
                failed.append({"training_id": training_id, "error": str(exc)})
                continue
            settled.append({"training_id": training_id, "invoice": _invoice_summary(invoice)})

    status = "succeeded" if not failed else "partial"
    logger.info(
        "task.finish",
        extra=after_task(
            RETRY_TASK_NAME,
            status=status,
            trace_id=trace_id,
            settled_count=len(settled),
            failed_count=len(failed),
        ),
    )
    return {"status": status, "settled": settled, "failed": failed}


@celery_app.task(bind=True, name=SETTLE_TASK_NAME, max_retries=3, default_retry_delay=60)
def settle_training_task(self, training_id: int) -> dict[str, Any]:
    """Settle one training; transient failures are retried by Celery."""
    logger.info("task.start", extra=before_task(SETTLE_TASK_NAME, training_id=training_id, trace_id=self.request.id))
    try:
        with get_db_session() as session:
            invoice = SettlementService(db=session).settle(training_id)
            summary = _invoice_summary(invoice)
    except (NotFoundError, InvalidStateError):
        logger.info(
            "task.finish",
            extra=after_task(SETTLE_TASK_NAME, status="rejected", training_id=training_id, trace_id=self.request.id),
        )
        raise
    except Exception as exc:
        logger.warning(
            "settlement.task_retry",
            extra={"event": "settlement.task_retry", "training_id": training_id, "reason": str(exc)},
        )
        raise self.retry(exc=exc)

    logger.info(
        "task.finish",
        extra=after_task(SETTLE_TASK_NAME, status="succeeded", training_id=training_id, trace_id=self.request.id),
    )
    return {"status": "succeeded", "training_id": training_id, "invoice": summary}
