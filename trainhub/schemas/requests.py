"""Training request (negotiation thread) schemas for API contracts."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trainhub.schemas.common import display_value


class RequestCreateRequest(BaseModel):
    training_id: int = Field(ge=1)
    trainer_ids: list[int] = Field(min_length=1)
    message: str | None = Field(default=None, max_length=4000)


class TransitionCommand(BaseModel):
    action: str = Field(min_length=1, max_length=40)
    price: float | None = None
    expected_version: int | None = Field(default=None, ge=1)


class RequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    training_id: int
    trainer_id: int
    status: str
    pending_confirmation_by: str
    counter_price: float | None = None
    company_counter_price: float | None = None
    agreed_price: float | None = None
    decline_reason: str | None = None
    message: str | None = None
    version: int
    trainer_accepted: bool
    is_completed: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", "pending_confirmation_by", mode="before")
    @classmethod
    def _display_enum(cls, value):
        return display_value(value)


class RequestListItem(RequestResponse):
    """Request joined with the identity of its training, topic, company and trainer."""

    training_title: str
    training_status: str
    start_date: date
    end_date: date
    daily_rate: float
    topic_name: str | None = None
    company_id: int
    company_name: str | None = None
    trainer_name: str | None = None

    @field_validator("training_status", mode="before")
    @classmethod
    def _display_training_status(cls, value):
        return display_value(value)

    @classmethod
    def from_request(cls, request) -> "RequestListItem":
        training = request.training
        base = RequestResponse.model_validate(request).model_dump()
        return cls(
            **base,
            training_title=training.title,
            training_status=training.status,
            start_date=training.start_date,
            end_date=training.end_date,
            daily_rate=training.daily_rate,
            topic_name=training.topic.name if training.topic else None,
            company_id=training.company_id,
            company_name=training.company.company_name if training.company else None,
            trainer_name=request.trainer.full_name if request.trainer else None,
        )


class FanOutResponse(BaseModel):
    created: list[RequestResponse]
    duplicates: list[int]
    rejected: list[int] = Field(default_factory=list)


class TransitionResponse(BaseModel):
    request: RequestResponse
    auto_declined_ids: list[int]
