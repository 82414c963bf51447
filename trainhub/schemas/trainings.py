"""Training request/response schemas for API contracts."""

from __future__ import annotations

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trainhub.schemas.common import display_value
from trainhub.schemas.invoices import InvoiceResponse


class TrainingCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    topic_id: int = Field(ge=1)
    company_id: int | None = Field(default=None, ge=1)
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = Field(default=None, max_length=300)
    participant_count: int = Field(default=1, ge=1)
    daily_rate: float = Field(gt=0)
    publish: bool = False


class TrainingPriceUpdateRequest(BaseModel):
    daily_rate: float


class TrainingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    topic_id: int
    company_id: int
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = None
    participant_count: int
    daily_rate: float
    status: str
    accepted_request_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _display_status(cls, value):
        return display_value(value)


class CompletionResponse(BaseModel):
    training: TrainingResponse
    invoice: InvoiceResponse | None = None
    settlement_error: str | None = None
