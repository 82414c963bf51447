from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

import trainhub.database.models  # noqa: F401
from trainhub.core.enums import RequestStatus
from trainhub.database.models import Base, TrainingRequest


def test_model_metadata_contains_target_tables():
    expected = {
        "companies",
        "trainers",
        "topics",
        "trainings",
        "training_requests",
        "invoices",
        "request_transition_audit",
    }
    assert expected.issubset(set(Base.metadata.tables.keys()))


def test_open_pair_index_is_partial_and_unique():
    index = next(
        idx for idx in Base.metadata.tables["training_requests"].indexes if idx.name == "uq_training_requests_open_pair"
    )
    assert index.unique is True
    assert [column.name for column in index.columns] == ["training_id", "trainer_id"]
    assert index.dialect_options["sqlite"]["where"] is not None
    assert index.dialect_options["postgresql"]["where"] is not None


def test_open_pair_index_blocks_a_second_open_request(session, seed, make_training):
    training = make_training()
    trainer_id = seed.trainers[0].id
    session.add(TrainingRequest(training_id=training.id, trainer_id=trainer_id, status=RequestStatus.DECLINED.value))
    session.add(TrainingRequest(training_id=training.id, trainer_id=trainer_id, status=RequestStatus.PENDING.value))
    session.commit()

    session.add(TrainingRequest(training_id=training.id, trainer_id=trainer_id, status=RequestStatus.ACCEPTED.value))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()
