"""Invoice response schemas for API contracts."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, field_validator

from trainhub.schemas.common import display_value


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    training_id: int
    training_request_id: int
    trainer_id: int
    company_id: int
    amount: float
    invoice_date: date
    status: str
    created_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _display_status(cls, value):
        return display_value(value)
