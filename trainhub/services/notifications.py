"""Transition events for the messaging collaborator.

Every request transition produces exactly one ``RequestTransitionEvent``. The
event is persisted as a ``RequestTransitionAudit`` row inside the transition's
transaction and handed to subscribers only after that transaction commits, so
subscribers never hear about a transition that was rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from trainhub.core.enums import Actor
from trainhub.core.logging import LogContext, build_log_event
from trainhub.database.models import RequestTransitionAudit, TrainingRequest
from trainhub.services.base_service import utcnow_naive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestTransitionEvent:
    request_id: int
    training_id: int
    trainer_id: int
    company_id: int
    action: str
    actor: str
    from_status: str
    to_status: str
    price: float | None
    reason: str | None
    occurred_at: datetime


Subscriber = Callable[[RequestTransitionEvent], None]


def record_transition(
    session: Session,
    request: TrainingRequest,
    company_id: int,
    action: str,
    actor: Actor,
    from_status: str,
    price: float | None = None,
    reason: str | None = None,
) -> RequestTransitionEvent:
    """Write the audit row for a transition and return the event to publish."""
    occurred_at = utcnow_naive()
    session.add(
        RequestTransitionAudit(
            training_request_id=request.id,
            training_id=request.training_id,
            action=action,
            actor=actor.value,
            from_status=from_status,
            to_status=request.status,
            price=price,
            reason=reason,
            created_at=occurred_at,
        )
    )
    return RequestTransitionEvent(
        request_id=request.id,
        training_id=request.training_id,
        trainer_id=request.trainer_id,
        company_id=company_id,
        action=action,
        actor=actor.value,
        from_status=from_status,
        to_status=request.status,
        price=price,
        reason=reason,
        occurred_at=occurred_at,
    )


class TransitionEventPublisher:
    """In-process fan-out of committed transition events to subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, events: Iterable[RequestTransitionEvent]) -> None:
        for event in events:
            logger.info(
                "request.transition",
                extra=build_log_event(
                    event="request.transition",
                    context=LogContext(
                        training_id=event.training_id,
                        request_id=event.request_id,
                        actor=event.actor,
                    ),
                    action=event.action,
                    from_status=event.from_status,
                    to_status=event.to_status,
                    price=event.price,
                    reason=event.reason,
                ),
            )
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception:
                    # The transition is already committed; delivery faults stay with the subscriber.
                    logger.exception(
                        "notification.delivery_failed",
                        extra={"event": "notification.delivery_failed", "request_id": event.request_id},
                    )


default_publisher = TransitionEventPublisher()
