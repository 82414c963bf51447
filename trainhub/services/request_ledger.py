"""Request ledger: fan-out of training requests and duplicate suppression."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from trainhub.core.enums import (
    CLOSED_TRAINING_STATUSES,
    OPEN_REQUEST_STATUSES,
    Actor,
    NegotiationAction,
    PendingConfirmation,
    RequestStatus,
    TrainingStatus,
)
from trainhub.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from trainhub.database.models import Trainer, Training, TrainingRequest
from trainhub.services.allocation_resolver import AllocationResolver
from trainhub.services.base_service import BaseService, utcnow_naive
from trainhub.services.notifications import (
    RequestTransitionEvent,
    TransitionEventPublisher,
    default_publisher,
    record_transition,
)
from trainhub.utils.validators import sanitize_text

logger = logging.getLogger(__name__)

FAN_OUT_ATTEMPTS = 3
NEW_REQUEST_MARKER = "NEW"


@dataclass
class FanOutResult:
    created: list[TrainingRequest] = field(default_factory=list)
    duplicates: list[int] = field(default_factory=list)
    # New trainers not invited because the training is already allocated.
    rejected: list[int] = field(default_factory=list)


class RequestLedger(BaseService):
    """Owns TrainingRequest rows: creation, lookup and listing."""

    def __init__(self, db: Session | None = None, publisher: TransitionEventPublisher | None = None) -> None:
        super().__init__(db)
        self.publisher = publisher or default_publisher

    def get_request(self, request_id: int | None) -> TrainingRequest:
        if request_id is None:
            raise ValidationError("request_id is required.")
        request = self.db.get(TrainingRequest, request_id)
        if request is None:
            raise NotFoundError(f"Training request not found: {request_id}")
        return request

    def fan_out(self, training_id: int | None, trainer_ids: list[int], message: str | None = None) -> FanOutResult:
        """Invite trainers to a training; already-invited trainers come back as duplicates.

        Once the training is allocated no new requests are created: open pairs
        are still reported as duplicates and the remaining trainers as rejected.
        """
        if training_id is None:
            raise ValidationError("training_id is required.")
        if not trainer_ids:
            raise ValidationError("At least one trainer_id is required.")
        if any(trainer_id is None for trainer_id in trainer_ids):
            raise ValidationError("trainer_ids must not contain empty values.")

        wanted = set(trainer_ids)
        known = {row.id for row in self.db.query(Trainer.id).filter(Trainer.id.in_(wanted)).all()}
        missing = sorted(wanted - known)
        if missing:
            raise NotFoundError(f"Trainer not found: {', '.join(str(item) for item in missing)}")

        note = sanitize_text(message, max_len=4000) or None
        for attempt in range(1, FAN_OUT_ATTEMPTS + 1):
            try:
                result, events = self._fan_out_once(training_id, trainer_ids, note)
            except ConflictError:
                if attempt == FAN_OUT_ATTEMPTS:
                    raise
                logger.info(
                    "fan_out.retry_after_conflict",
                    extra={"event": "fan_out.retry_after_conflict", "training_id": training_id, "attempt": attempt},
                )
                continue
            self.publisher.publish(events)
            logger.info(
                "fan_out.completed",
                extra={
                    "event": "fan_out.completed",
                    "training_id": training_id,
                    "created_request_ids": [request.id for request in result.created],
                    "duplicate_trainer_ids": result.duplicates,
                    "rejected_trainer_ids": result.rejected,
                },
            )
            return result
        raise ConflictError(f"Fan-out for training {training_id} did not complete.")  # pragma: no cover

    def _fan_out_once(
        self, training_id: int, trainer_ids: list[int], message: str | None
    ) -> tuple[FanOutResult, list[RequestTransitionEvent]]:
        training = self.db.get(Training, training_id)
        if training is None:
            raise NotFoundError(f"Training not found: {training_id}")
        self.db.refresh(training)
        if training.status in CLOSED_TRAINING_STATUSES:
            raise InvalidStateError(f"Training {training_id} is {training.status}; no new requests.")

        allocated = training.accepted_request_id is not None
        result = FanOutResult()
        events: list[RequestTransitionEvent] = []
        try:
            AllocationResolver(self.db).acquire(training)
            open_pairs = {
                row.trainer_id
                for row in self.db.query(TrainingRequest.trainer_id)
                .filter(
                    TrainingRequest.training_id == training_id,
                    TrainingRequest.status.in_(OPEN_REQUEST_STATUSES),
                )
                .all()
            }
            now = utcnow_naive()
            for trainer_id in trainer_ids:
                if trainer_id in open_pairs:
                    result.duplicates.append(trainer_id)
                    continue
                if allocated:
                    result.rejected.append(trainer_id)
                    continue
                request = TrainingRequest(
                    training_id=training_id,
                    trainer_id=trainer_id,
                    status=RequestStatus.PENDING.value,
                    pending_confirmation_by=PendingConfirmation.NONE.value,
                    message=message,
                    created_at=now,
                    updated_at=now,
                )
                try:
                    with self.db.begin_nested():
                        self.db.add(request)
                        self.db.flush()
                except IntegrityError:
                    # Lost a race on the open-pair unique index.
                    result.duplicates.append(trainer_id)
                    open_pairs.add(trainer_id)
                    continue
                open_pairs.add(trainer_id)
                result.created.append(request)
                events.append(
                    record_transition(
                        self.db,
                        request,
                        company_id=training.company_id,
                        action=NegotiationAction.INVITE.value,
                        actor=Actor.COMPANY,
                        from_status=NEW_REQUEST_MARKER,
                    )
                )

            if result.created and training.status == TrainingStatus.DRAFT.value:
                training.status = TrainingStatus.PUBLISHED.value
                training.updated_at = now
            self.commit()
        except Exception:
            self.rollback()
            raise
        return result, events

    def list_requests(
        self,
        trainer_id: int | None = None,
        company_id: int | None = None,
        training_id: int | None = None,
    ) -> list[TrainingRequest]:
        """Requests joined with training, topic, company and trainer identity, newest first."""
        if trainer_id is None and company_id is None and training_id is None:
            raise ValidationError("Either trainer_id, company_id or training_id is required.")

        query = (
            self.db.query(TrainingRequest)
            .join(Training, TrainingRequest.training_id == Training.id)
            .options(
                joinedload(TrainingRequest.training).joinedload(Training.topic),
                joinedload(TrainingRequest.training).joinedload(Training.company),
                joinedload(TrainingRequest.trainer),
            )
        )
        if trainer_id is not None:
            query = query.filter(TrainingRequest.trainer_id == trainer_id)
        if company_id is not None:
            query = query.filter(Training.company_id == company_id)
        if training_id is not None:
            query = query.filter(TrainingRequest.training_id == training_id)
        return query.order_by(TrainingRequest.created_at.desc(), TrainingRequest.id.desc()).all()
