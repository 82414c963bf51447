"""Canonical state transition helpers for trainings and negotiation threads."""

from __future__ import annotations

from dataclasses import dataclass

from trainhub.core.enums import PendingConfirmation, RequestStatus, TrainingStatus
from trainhub.core.exceptions import InvalidStateError


class InvalidTransitionError(InvalidStateError):
    """Raised when a disallowed state transition is attempted."""


class StateMachine:
    """Simple transition table with allow/deny checks."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {current} -> {target}")


TRAINING_LIFECYCLE = StateMachine(
    {
        TrainingStatus.DRAFT.value: {TrainingStatus.PUBLISHED.value, TrainingStatus.CANCELLED.value},
        TrainingStatus.PUBLISHED.value: {
            TrainingStatus.IN_PROGRESS.value,
            TrainingStatus.COMPLETED.value,
            TrainingStatus.CANCELLED.value,
        },
        TrainingStatus.IN_PROGRESS.value: {TrainingStatus.COMPLETED.value, TrainingStatus.CANCELLED.value},
    }
)

REQUEST_LIFECYCLE = StateMachine(
    {
        RequestStatus.PENDING.value: {
            RequestStatus.PENDING.value,
            RequestStatus.ACCEPTED.value,
            RequestStatus.DECLINED.value,
        },
        RequestStatus.ACCEPTED.value: {RequestStatus.WITHDRAWN.value},
    }
)


@dataclass(frozen=True)
class NegotiationState:
    """Compound negotiation state: primary status plus who still has to confirm.

    Only PENDING requests may wait on a confirmation; every terminal status
    carries ``PendingConfirmation.NONE``.
    """

    status: RequestStatus
    pending_confirmation_by: PendingConfirmation = PendingConfirmation.NONE

    def __post_init__(self) -> None:
        if self.status is not RequestStatus.PENDING and self.pending_confirmation_by is not PendingConfirmation.NONE:
            raise InvalidStateError(
                f"{self.status.value} request cannot await confirmation by {self.pending_confirmation_by.value}"
            )

    @property
    def is_terminal(self) -> bool:
        return self.status is not RequestStatus.PENDING

    @property
    def trainer_accepted(self) -> bool:
        return self.pending_confirmation_by is PendingConfirmation.COMPANY

    def moved_to(
        self,
        status: RequestStatus,
        pending_confirmation_by: PendingConfirmation = PendingConfirmation.NONE,
    ) -> "NegotiationState":
        REQUEST_LIFECYCLE.assert_transition(self.status.value, status.value)
        return NegotiationState(status=status, pending_confirmation_by=pending_confirmation_by)
