"""Slot registry: owns trainings and their lifecycle status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.orm import Session

from trainhub.core.enums import (
    CLOSED_TRAINING_STATUSES,
    DeclineReason,
    PendingConfirmation,
    RequestStatus,
    TrainingStatus,
)
from trainhub.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from trainhub.database.models import Company, Invoice, Topic, Training, TrainingRequest
from trainhub.orchestration.state_machine import TRAINING_LIFECYCLE
from trainhub.services.allocation_resolver import AllocationResolver
from trainhub.services.base_service import BaseService, utcnow_naive
from trainhub.services.negotiation_engine import validate_price
from trainhub.services.notifications import TransitionEventPublisher, default_publisher
from trainhub.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

INITIAL_STATUSES = (TrainingStatus.DRAFT.value, TrainingStatus.PUBLISHED.value)


@dataclass(frozen=True)
class SlotSpec:
    title: str
    topic_id: int
    company_id: int
    start_date: date
    end_date: date
    daily_rate: float
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = None
    participant_count: int = 1
    status: str = TrainingStatus.DRAFT.value


@dataclass
class CompletionResult:
    training: Training
    invoice: Invoice | None
    settlement_error: str | None = None


class SlotRegistry(BaseService):
    """Creates trainings and drives DRAFT → PUBLISHED → IN_PROGRESS → COMPLETED/CANCELLED."""

    def __init__(self, db: Session | None = None, publisher: TransitionEventPublisher | None = None) -> None:
        super().__init__(db)
        self.publisher = publisher or default_publisher

    def get_training(self, training_id: int | None) -> Training:
        if training_id is None:
            raise ValidationError("training_id is required.")
        training = self.db.get(Training, training_id)
        if training is None:
            raise NotFoundError(f"Training not found: {training_id}")
        return training

    def create_slot(self, spec: SlotSpec) -> Training:
        if spec.status not in INITIAL_STATUSES:
            raise ValidationError(f"A training starts as DRAFT or PUBLISHED, not {spec.status}.")
        if not spec.title or not spec.title.strip():
            raise ValidationError("title is required.")
        if spec.end_date < spec.start_date:
            raise ValidationError("end_date must not be before start_date.")
        if spec.participant_count < 1:
            raise ValidationError("participant_count must be at least 1.")
        daily_rate = validate_price(spec.daily_rate)
        if self.db.get(Company, spec.company_id) is None:
            raise NotFoundError(f"Company not found: {spec.company_id}")
        if self.db.get(Topic, spec.topic_id) is None:
            raise NotFoundError(f"Topic not found: {spec.topic_id}")

        now = utcnow_naive()
        training = Training(
            title=spec.title.strip(),
            topic_id=spec.topic_id,
            company_id=spec.company_id,
            start_date=spec.start_date,
            end_date=spec.end_date,
            start_time=spec.start_time,
            end_time=spec.end_time,
            location=spec.location,
            participant_count=spec.participant_count,
            daily_rate=daily_rate,
            status=spec.status,
            allocation_version=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(training)
        self.commit()
        self.db.refresh(training)
        logger.info(
            "training.created",
            extra={"event": "training.created", "training_id": training.id, "status": training.status},
        )
        return training

    def update_asking_price(self, training_id: int, price: float) -> Training:
        price = validate_price(price)
        training = self.get_training(training_id)
        if training.status in CLOSED_TRAINING_STATUSES:
            raise InvalidStateError(f"Training {training_id} is {training.status}; its price is final.")
        try:
            AllocationResolver(self.db).acquire(training)
            committed = (
                self.db.query(TrainingRequest.id)
                .filter(
                    TrainingRequest.training_id == training_id,
                    (TrainingRequest.status == RequestStatus.ACCEPTED.value)
                    | (TrainingRequest.pending_confirmation_by == PendingConfirmation.COMPANY.value),
                )
                .first()
            )
            if committed is not None:
                raise InvalidStateError(
                    f"Training {training_id} cannot be re-priced; request {committed.id} has already agreed."
                )
            training.daily_rate = price
            training.updated_at = utcnow_naive()
            self.commit()
        except Exception:
            self.rollback()
            raise
        return training

    def publish(self, training_id: int) -> Training:
        return self._move(training_id, TrainingStatus.PUBLISHED)

    def start(self, training_id: int) -> Training:
        return self._move(training_id, TrainingStatus.IN_PROGRESS)

    def mark_completed(self, training_id: int) -> CompletionResult:
        """Complete the training, then settle it in a separate transaction.

        A settlement failure leaves the training COMPLETED; the retry task
        picks it up later.
        """
        training = self._move(training_id, TrainingStatus.COMPLETED)
        try:
            invoice = SettlementService(self.db).settle(training.id)
        except Exception as exc:
            logger.exception(
                "settlement.failed",
                extra={"event": "settlement.failed", "training_id": training.id},
            )
            return CompletionResult(training=training, invoice=None, settlement_error=str(exc))
        return CompletionResult(training=training, invoice=invoice)

    def cancel(self, training_id: int) -> Training:
        training = self.get_training(training_id)
        TRAINING_LIFECYCLE.assert_transition(training.status, TrainingStatus.CANCELLED.value)
        try:
            resolver = AllocationResolver(self.db)
            resolver.acquire(training)
            training.status = TrainingStatus.CANCELLED.value
            training.updated_at = utcnow_naive()
            events = resolver.close_out(training, DeclineReason.TRAINING_CANCELLED)
            self.commit()
        except Exception:
            self.rollback()
            raise
        self.publisher.publish(events)
        logger.info(
            "training.cancelled",
            extra={
                "event": "training.cancelled",
                "training_id": training.id,
                "closed_request_ids": [event.request_id for event in events],
            },
        )
        return training

    def _move(self, training_id: int, target: TrainingStatus) -> Training:
        training = self.get_training(training_id)
        TRAINING_LIFECYCLE.assert_transition(training.status, target.value)
        previous = training.status
        try:
            AllocationResolver(self.db).acquire(training)
            training.status = target.value
            training.updated_at = utcnow_naive()
            self.commit()
        except Exception:
            self.rollback()
            raise
        logger.info(
            "training.status_changed",
            extra={
                "event": "training.status_changed",
                "training_id": training.id,
                "from_status": previous,
                "to_status": target.value,
            },
        )
        return training
