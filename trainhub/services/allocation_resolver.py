"""Allocation resolver: at most one accepted request per training.

All methods run inside the caller's transaction and never commit. Callers
must ``acquire`` the training before touching any of its requests; every
writer of a training's requests goes through that conditional bump, so two
transactions working on the same training cannot both commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from trainhub.core.enums import (
    Actor,
    DeclineReason,
    NegotiationAction,
    PendingConfirmation,
    RequestStatus,
)
from trainhub.core.exceptions import ConflictError
from trainhub.database.models import Training, TrainingRequest
from trainhub.services.base_service import utcnow_naive
from trainhub.services.notifications import RequestTransitionEvent, record_transition

logger = logging.getLogger(__name__)


class AllocationResolver:
    """Training-scoped locking, allocation claims and sibling close-out."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def acquire(self, training: Training) -> None:
        """Bump ``allocation_version`` if nobody else has since it was read."""
        seen = training.allocation_version
        result = self.db.execute(
            update(Training)
            .where(Training.id == training.id, Training.allocation_version == seen)
            .values(allocation_version=seen + 1, updated_at=utcnow_naive())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Training {training.id} was modified concurrently; reload and retry.")
        set_committed_value(training, "allocation_version", seen + 1)

    def ensure_not_held(self, training: Training, request: TrainingRequest) -> None:
        """Reject when another request of ``training`` awaits company confirmation."""
        held = (
            self.db.query(TrainingRequest.id)
            .filter(
                TrainingRequest.training_id == training.id,
                TrainingRequest.id != request.id,
                TrainingRequest.status == RequestStatus.PENDING.value,
                TrainingRequest.pending_confirmation_by == PendingConfirmation.COMPANY.value,
            )
            .first()
        )
        if held is not None:
            raise ConflictError(
                f"Training {training.id} is held by request {held.id} awaiting company confirmation."
            )

    def claim(self, training: Training, request: TrainingRequest) -> None:
        """Record ``request`` as the single accepted request of ``training``."""
        self.ensure_not_held(training, request)

        result = self.db.execute(
            update(Training)
            .where(Training.id == training.id, Training.accepted_request_id.is_(None))
            .values(accepted_request_id=request.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Training {training.id} has already been allocated.")
        set_committed_value(training, "accepted_request_id", request.id)

    def release(self, training: Training, request: TrainingRequest) -> None:
        result = self.db.execute(
            update(Training)
            .where(Training.id == training.id, Training.accepted_request_id == request.id)
            .values(accepted_request_id=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Request {request.id} does not hold the allocation of training {training.id}.")
        set_committed_value(training, "accepted_request_id", None)

    def decline_siblings(self, training: Training, winner: TrainingRequest) -> list[RequestTransitionEvent]:
        """Decline every other PENDING request of the training (slot filled)."""
        siblings = (
            self.db.query(TrainingRequest)
            .filter(
                TrainingRequest.training_id == training.id,
                TrainingRequest.id != winner.id,
                TrainingRequest.status == RequestStatus.PENDING.value,
            )
            .order_by(TrainingRequest.id)
            .all()
        )
        events = [
            self._close(
                training,
                sibling,
                RequestStatus.DECLINED,
                NegotiationAction.AUTO_DECLINE,
                DeclineReason.SLOT_FILLED,
            )
            for sibling in siblings
        ]
        if events:
            logger.info(
                "allocation.siblings_declined",
                extra={
                    "event": "allocation.siblings_declined",
                    "training_id": training.id,
                    "winner_request_id": winner.id,
                    "declined_request_ids": [event.request_id for event in events],
                },
            )
        return events

    def close_out(self, training: Training, reason: DeclineReason) -> list[RequestTransitionEvent]:
        """Decline every PENDING request of a training that is going away.

        Terminal requests, an ACCEPTED booking included, are left as they are.
        """
        pending = (
            self.db.query(TrainingRequest)
            .filter(
                TrainingRequest.training_id == training.id,
                TrainingRequest.status == RequestStatus.PENDING.value,
            )
            .order_by(TrainingRequest.id)
            .all()
        )
        return [
            self._close(training, request, RequestStatus.DECLINED, NegotiationAction.CLOSE_OUT, reason)
            for request in pending
        ]

    def _close(
        self,
        training: Training,
        request: TrainingRequest,
        target: RequestStatus,
        action: NegotiationAction,
        reason: DeclineReason,
    ) -> RequestTransitionEvent:
        from_status = request.status
        state = request.state.moved_to(target)
        request.status = state.status.value
        request.pending_confirmation_by = state.pending_confirmation_by.value
        request.decline_reason = reason.value
        request.updated_at = utcnow_naive()
        return record_transition(
            self.db,
            request,
            company_id=training.company_id,
            action=action.value,
            actor=Actor.SYSTEM,
            from_status=from_status,
            reason=reason.value,
        )
