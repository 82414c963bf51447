from __future__ import annotations

from datetime import date, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from trainhub.schemas.common import display_value
from trainhub.schemas.requests import RequestCreateRequest, RequestResponse, TransitionCommand
from trainhub.schemas.trainings import TrainingCreateRequest, TrainingResponse


def test_training_schema_rejects_non_positive_rate():
    with pytest.raises(PydanticValidationError):
        TrainingCreateRequest(
            title="Docker",
            topic_id=1,
            start_date=date(2026, 4, 1),
            end_date=date(2026, 4, 1),
            daily_rate=0,
        )


def test_request_schema_requires_trainers():
    with pytest.raises(PydanticValidationError):
        RequestCreateRequest(training_id=1, trainer_ids=[])
    assert RequestCreateRequest(training_id=1, trainer_ids=[3, 3]).trainer_ids == [3, 3]


def test_transition_command_defaults():
    command = TransitionCommand(action="accept")
    assert command.price is None
    assert command.expected_version is None


def test_status_is_lowercase_at_the_edge():
    assert display_value("IN_PROGRESS") == "in_progress"
    assert display_value(None) is None

    training = TrainingResponse(
        id=1,
        title="Docker",
        topic_id=1,
        company_id=1,
        start_date=date(2026, 4, 1),
        end_date=date(2026, 4, 1),
        participant_count=1,
        daily_rate=800.0,
        status="PUBLISHED",
    )
    assert training.status == "published"

    request = RequestResponse(
        id=1,
        training_id=1,
        trainer_id=2,
        status="PENDING",
        pending_confirmation_by="COMPANY",
        version=3,
        trainer_accepted=True,
        is_completed=False,
        created_at=datetime(2026, 4, 1, 9, 0),
    )
    assert request.status == "pending"
    assert request.pending_confirmation_by == "company"
