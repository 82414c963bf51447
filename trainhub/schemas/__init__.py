"""Pydantic schema package for API contracts."""

from trainhub.schemas.common import display_value
from trainhub.schemas.invoices import InvoiceResponse
from trainhub.schemas.requests import (
    FanOutResponse,
    RequestCreateRequest,
    RequestListItem,
    RequestResponse,
    TransitionCommand,
    TransitionResponse,
)
from trainhub.schemas.trainings import (
    CompletionResponse,
    TrainingCreateRequest,
    TrainingPriceUpdateRequest,
    TrainingResponse,
)

__all__ = [
    "CompletionResponse",
    "FanOutResponse",
    "InvoiceResponse",
    "RequestCreateRequest",
    "RequestListItem",
    "RequestResponse",
    "TrainingCreateRequest",
    "TrainingPriceUpdateRequest",
    "TrainingResponse",
    "TransitionCommand",
    "TransitionResponse",
    "display_value",
]
