"""Enums for the TrainHub negotiation core.

Values are the canonical persisted (uppercase) forms. Display strings for API
consumers are derived at the schema edge, see ``trainhub.schemas.common``.
"""

from enum import Enum


class TrainingStatus(Enum):
    """Lifecycle of a bookable training slot."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RequestStatus(Enum):
    """Primary status of one trainer's negotiation thread."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    WITHDRAWN = "WITHDRAWN"


class PendingConfirmation(Enum):
    """
    Which party still has to confirm a standing offer on a PENDING request.

    TRAINER: the company has a counter on the table.
    COMPANY: the trainer accepted the company's counter (formerly ``trainerAccepted``).
    """

    NONE = "NONE"
    TRAINER = "TRAINER"
    COMPANY = "COMPANY"


class Actor(Enum):
    TRAINER = "TRAINER"
    COMPANY = "COMPANY"
    SYSTEM = "SYSTEM"


class NegotiationAction(Enum):
    """Actions a party can drive through the negotiation engine."""

    ACCEPT = "accept"
    COUNTER = "counter"
    ACCEPT_COUNTER = "accept_counter"
    COMPANY_COUNTER = "company_counter"
    ACCEPT_COMPANY_COUNTER = "accept_company_counter"
    CONFIRM = "confirm"
    DECLINE = "decline"
    WITHDRAW = "withdraw"
    # Emitted by the ledger and allocation resolver only.
    INVITE = "invite"
    AUTO_DECLINE = "auto_decline"
    CLOSE_OUT = "close_out"


class DeclineReason(Enum):
    DECLINED_BY_TRAINER = "declined_by_trainer"
    DECLINED_BY_COMPANY = "declined_by_company"
    SLOT_FILLED = "slot_filled"
    TRAINING_CANCELLED = "training_cancelled"
    WITHDRAWN_BY_TRAINER = "withdrawn_by_trainer"


class InvoiceStatus(Enum):
    ISSUED = "ISSUED"
    PAID = "PAID"


TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.ACCEPTED.value, RequestStatus.DECLINED.value, RequestStatus.WITHDRAWN.value}
)
OPEN_REQUEST_STATUSES = (RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value)
CLOSED_TRAINING_STATUSES = frozenset({TrainingStatus.COMPLETED.value, TrainingStatus.CANCELLED.value})
