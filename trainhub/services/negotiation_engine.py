"""Negotiation protocol engine for training requests.

A request moves through the compound state ``(status, pending_confirmation_by)``:

    PENDING/NONE ──counter──────────────▶ PENDING/NONE
    PENDING/*    ──company_counter──────▶ PENDING/TRAINER
    PENDING/*    ──accept_company_counter▶ PENDING/COMPANY   (trainer accepted)
    PENDING/COMPANY ──confirm───────────▶ ACCEPTED
    PENDING/NONE ──accept (no counters)─▶ ACCEPTED
    PENDING/*    ──accept_counter───────▶ ACCEPTED
    PENDING/*    ──decline──────────────▶ DECLINED
    ACCEPTED     ──withdraw─────────────▶ WITHDRAWN

The agreed price is resolved as company counter, else trainer counter, else
the training's daily rate. ``plan_transition`` is pure; ``NegotiationEngine``
applies a plan to the database under the allocation resolver's lock.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from trainhub.core.enums import (
    CLOSED_TRAINING_STATUSES,
    Actor,
    DeclineReason,
    NegotiationAction,
    PendingConfirmation,
    RequestStatus,
)
from trainhub.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from trainhub.database.models import TrainingRequest
from trainhub.orchestration.state_machine import NegotiationState
from trainhub.services.allocation_resolver import AllocationResolver
from trainhub.services.base_service import BaseService, utcnow_naive
from trainhub.services.notifications import (
    RequestTransitionEvent,
    TransitionEventPublisher,
    default_publisher,
    record_transition,
)

logger = logging.getLogger(__name__)

ACTION_ACTORS: dict[NegotiationAction, frozenset[Actor]] = {
    NegotiationAction.ACCEPT: frozenset({Actor.TRAINER}),
    NegotiationAction.COUNTER: frozenset({Actor.TRAINER}),
    NegotiationAction.ACCEPT_COUNTER: frozenset({Actor.COMPANY}),
    NegotiationAction.COMPANY_COUNTER: frozenset({Actor.COMPANY}),
    NegotiationAction.ACCEPT_COMPANY_COUNTER: frozenset({Actor.TRAINER}),
    NegotiationAction.CONFIRM: frozenset({Actor.COMPANY}),
    NegotiationAction.DECLINE: frozenset({Actor.TRAINER, Actor.COMPANY}),
    NegotiationAction.WITHDRAW: frozenset({Actor.TRAINER}),
}
PRICED_ACTIONS = frozenset({NegotiationAction.COUNTER, NegotiationAction.COMPANY_COUNTER})


def resolve_price(daily_rate: float, counter_price: float | None, company_counter_price: float | None) -> float:
    """Final agreed price: company counter, else trainer counter, else asking price."""
    if company_counter_price is not None:
        return company_counter_price
    if counter_price is not None:
        return counter_price
    return daily_rate


def negotiated_price(request: TrainingRequest) -> float:
    if request.agreed_price is not None:
        return request.agreed_price
    return resolve_price(request.training.daily_rate, request.counter_price, request.company_counter_price)


def validate_price(price) -> float:
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise ValidationError("price must be a number.")
    if not math.isfinite(price) or price <= 0:
        raise ValidationError("price must be a positive amount.")
    return float(price)


@dataclass(frozen=True)
class TransitionPlan:
    state: NegotiationState
    counter_price: float | None
    company_counter_price: float | None
    agreed_price: float | None = None
    decline_reason: str | None = None
    event_price: float | None = None


def plan_transition(
    state: NegotiationState,
    action: NegotiationAction,
    actor: Actor,
    daily_rate: float,
    counter_price: float | None,
    company_counter_price: float | None,
    price: float | None = None,
) -> TransitionPlan:
    """Compute the next state and prices for ``action`` without touching storage."""
    allowed = ACTION_ACTORS.get(action)
    if allowed is None:
        raise ValidationError(f"Action '{action.value}' cannot be requested directly.")
    if actor not in allowed:
        raise ValidationError(f"{actor.value.lower()} may not perform '{action.value}'.")
    if action in PRICED_ACTIONS:
        if price is None:
            raise ValidationError(f"'{action.value}' requires a price.")
        price = validate_price(price)
    elif price is not None:
        raise ValidationError(f"'{action.value}' does not take a price.")

    if state.is_terminal:
        if state.status is RequestStatus.ACCEPTED and action is NegotiationAction.WITHDRAW:
            return TransitionPlan(
                state=state.moved_to(RequestStatus.WITHDRAWN),
                counter_price=counter_price,
                company_counter_price=company_counter_price,
                agreed_price=resolve_price(daily_rate, counter_price, company_counter_price),
                decline_reason=DeclineReason.WITHDRAWN_BY_TRAINER.value,
            )
        raise TerminalStateError(f"Request is {state.status.value}; '{action.value}' is not possible.")

    if action is NegotiationAction.WITHDRAW:
        raise InvalidStateError("Only an accepted booking can be withdrawn.")

    if action is NegotiationAction.ACCEPT:
        if counter_price is not None or company_counter_price is not None:
            raise InvalidStateError("Counter offers are outstanding; accept the counter instead.")
        return TransitionPlan(
            state=state.moved_to(RequestStatus.ACCEPTED),
            counter_price=None,
            company_counter_price=None,
            agreed_price=daily_rate,
            event_price=daily_rate,
        )

    if action is NegotiationAction.COUNTER:
        return TransitionPlan(
            state=state.moved_to(RequestStatus.PENDING, PendingConfirmation.NONE),
            counter_price=price,
            company_counter_price=company_counter_price,
            event_price=price,
        )

    if action is NegotiationAction.ACCEPT_COUNTER:
        if counter_price is None:
            raise InvalidStateError("The trainer has not proposed a counter price.")
        # The company's own standing counter is superseded by the agreement.
        agreed = resolve_price(daily_rate, counter_price, None)
        return TransitionPlan(
            state=state.moved_to(RequestStatus.ACCEPTED),
            counter_price=counter_price,
            company_counter_price=None,
            agreed_price=agreed,
            event_price=agreed,
        )

    if action is NegotiationAction.COMPANY_COUNTER:
        return TransitionPlan(
            state=state.moved_to(RequestStatus.PENDING, PendingConfirmation.TRAINER),
            counter_price=counter_price,
            company_counter_price=price,
            event_price=price,
        )

    if action is NegotiationAction.ACCEPT_COMPANY_COUNTER:
        if company_counter_price is None:
            raise InvalidStateError("The company has not proposed a counter price.")
        if state.trainer_accepted:
            raise InvalidStateError("Counter already accepted; awaiting company confirmation.")
        return TransitionPlan(
            state=state.moved_to(RequestStatus.PENDING, PendingConfirmation.COMPANY),
            counter_price=counter_price,
            company_counter_price=company_counter_price,
            event_price=company_counter_price,
        )

    if action is NegotiationAction.CONFIRM:
        if not state.trainer_accepted:
            raise InvalidStateError("The trainer has not accepted a company counter yet.")
        agreed = resolve_price(daily_rate, counter_price, company_counter_price)
        return TransitionPlan(
            state=state.moved_to(RequestStatus.ACCEPTED),
            counter_price=counter_price,
            company_counter_price=company_counter_price,
            agreed_price=agreed,
            event_price=agreed,
        )

    # DECLINE
    reason = DeclineReason.DECLINED_BY_TRAINER if actor is Actor.TRAINER else DeclineReason.DECLINED_BY_COMPANY
    return TransitionPlan(
        state=state.moved_to(RequestStatus.DECLINED),
        counter_price=counter_price,
        company_counter_price=company_counter_price,
        decline_reason=reason.value,
    )


@dataclass
class TransitionResult:
    request: TrainingRequest
    auto_declined_ids: list[int] = field(default_factory=list)
    events: list[RequestTransitionEvent] = field(default_factory=list)


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        try:
            return enum_cls[str(value).upper()]
        except KeyError as exc:
            raise ValidationError(f"Unknown {label}: {value!r}") from exc


class NegotiationEngine(BaseService):
    """Drives per-request transitions and the allocation side effects."""

    def __init__(self, db: Session | None = None, publisher: TransitionEventPublisher | None = None) -> None:
        super().__init__(db)
        self.publisher = publisher or default_publisher

    def transition_request(
        self,
        request_id: int | None,
        action: NegotiationAction | str,
        actor: Actor | str,
        price: float | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        if request_id is None:
            raise ValidationError("request_id is required.")
        action = _coerce_enum(NegotiationAction, action, "action")
        actor = _coerce_enum(Actor, actor, "actor")

        request = self.db.get(TrainingRequest, request_id)
        if request is None:
            raise NotFoundError(f"Training request not found: {request_id}")
        if expected_version is not None and request.version != expected_version:
            raise ConflictError(
                f"Request {request_id} is at version {request.version}, not {expected_version}; reload and retry."
            )

        training = request.training
        plan = plan_transition(
            request.state,
            action,
            actor,
            daily_rate=training.daily_rate,
            counter_price=request.counter_price,
            company_counter_price=request.company_counter_price,
            price=price,
        )
        if training.status in CLOSED_TRAINING_STATUSES:
            raise InvalidStateError(f"Training {training.id} is {training.status}; negotiation is closed.")

        from_status = request.status
        events: list[RequestTransitionEvent] = []
        try:
            resolver = AllocationResolver(self.db)
            resolver.acquire(training)
            if plan.state.trainer_accepted:
                # At most one request per training awaits company confirmation.
                resolver.ensure_not_held(training, request)

            request.status = plan.state.status.value
            request.pending_confirmation_by = plan.state.pending_confirmation_by.value
            request.counter_price = plan.counter_price
            request.company_counter_price = plan.company_counter_price
            if plan.agreed_price is not None:
                request.agreed_price = plan.agreed_price
            if plan.decline_reason is not None:
                request.decline_reason = plan.decline_reason
            request.updated_at = utcnow_naive()

            if plan.state.status is RequestStatus.ACCEPTED:
                resolver.claim(training, request)
            elif plan.state.status is RequestStatus.WITHDRAWN:
                resolver.release(training, request)

            events.append(
                record_transition(
                    self.db,
                    request,
                    company_id=training.company_id,
                    action=action.value,
                    actor=actor,
                    from_status=from_status,
                    price=plan.event_price,
                    reason=plan.decline_reason,
                )
            )
            if plan.state.status is RequestStatus.ACCEPTED:
                events.extend(resolver.decline_siblings(training, request))
            self.commit()
        except StaleDataError as exc:
            self.rollback()
            raise ConflictError(f"Request {request_id} was modified concurrently; reload and retry.") from exc
        except Exception:
            self.rollback()
            raise

        self.publisher.publish(events)
        auto_declined = [event.request_id for event in events[1:]]
        logger.info(
            "negotiation.transition_applied",
            extra={
                "event": "negotiation.transition_applied",
                "request_id": request.id,
                "training_id": training.id,
                "action": action.value,
                "status": request.status,
                "auto_declined_ids": auto_declined,
            },
        )
        return TransitionResult(request=request, auto_declined_ids=auto_declined, events=events)

    def is_completed(self, request_id: int) -> bool:
        request = self.db.get(TrainingRequest, request_id)
        if request is None:
            raise NotFoundError(f"Training request not found: {request_id}")
        return request.is_completed
