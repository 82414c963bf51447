from __future__ import annotations

import pytest

from trainhub.core.enums import Actor, PendingConfirmation, RequestStatus, TrainingStatus
from trainhub.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from trainhub.database.models import Training, TrainingRequest
from trainhub.services.negotiation_engine import NegotiationEngine
from trainhub.services.request_ledger import RequestLedger
from trainhub.services.slot_registry import SlotRegistry


def test_fan_out_creates_pending_requests_and_publishes_draft(session, seed, make_training, publisher):
    training = make_training(status=TrainingStatus.DRAFT.value)
    ledger = RequestLedger(db=session, publisher=publisher)

    result = ledger.fan_out(training.id, [t.id for t in seed.trainers[:2]], message="  Can you run this?  ")

    assert result.duplicates == []
    assert [r.trainer_id for r in result.created] == [seed.trainers[0].id, seed.trainers[1].id]
    for request in result.created:
        assert request.status == RequestStatus.PENDING.value
        assert request.pending_confirmation_by == PendingConfirmation.NONE.value
        assert request.counter_price is None
        assert request.company_counter_price is None
        assert request.message == "Can you run this?"
    assert session.get(Training, training.id).status == TrainingStatus.PUBLISHED.value


def test_fan_out_reports_repeats_and_existing_pairs_as_duplicates(session, seed, make_training, publisher):
    training = make_training()
    ledger = RequestLedger(db=session, publisher=publisher)
    first, second = seed.trainers[0].id, seed.trainers[1].id

    result = ledger.fan_out(training.id, [first, first])
    assert len(result.created) == 1
    assert result.duplicates == [first]

    retry = ledger.fan_out(training.id, [first, second])
    assert [r.trainer_id for r in retry.created] == [second]
    assert retry.duplicates == [first]


def test_declined_trainer_can_be_invited_again(session, seed, make_training, publisher):
    training = make_training()
    ledger = RequestLedger(db=session, publisher=publisher)
    trainer_id = seed.trainers[0].id
    (request,) = ledger.fan_out(training.id, [trainer_id]).created
    NegotiationEngine(db=session, publisher=publisher).transition_request(request.id, "decline", Actor.TRAINER)

    again = ledger.fan_out(training.id, [trainer_id])

    assert len(again.created) == 1
    assert again.created[0].id != request.id
    assert again.duplicates == []


def test_fan_out_input_validation(session, seed, make_training, publisher):
    training = make_training()
    ledger = RequestLedger(db=session, publisher=publisher)

    with pytest.raises(ValidationError):
        ledger.fan_out(training.id, [])
    with pytest.raises(ValidationError):
        ledger.fan_out(None, [seed.trainers[0].id])
    with pytest.raises(NotFoundError):
        ledger.fan_out(training.id, [seed.trainers[0].id, 4242])
    with pytest.raises(NotFoundError):
        ledger.fan_out(9999, [seed.trainers[0].id])


def test_fan_out_rejected_for_closed_trainings(session, seed, make_training, publisher):
    ledger = RequestLedger(db=session, publisher=publisher)
    registry = SlotRegistry(db=session, publisher=publisher)

    cancelled = make_training()
    registry.cancel(cancelled.id)
    with pytest.raises(InvalidStateError):
        ledger.fan_out(cancelled.id, [seed.trainers[0].id])

    completed = make_training()
    registry.mark_completed(completed.id)
    with pytest.raises(InvalidStateError):
        ledger.fan_out(completed.id, [seed.trainers[0].id])


def test_fan_out_retry_after_allocation_reports_duplicates(session, seed, make_training, publisher):
    training = make_training()
    ledger = RequestLedger(db=session, publisher=publisher)
    booked, other = [t.id for t in seed.trainers[:2]]
    first, _ = ledger.fan_out(training.id, [booked, other]).created
    NegotiationEngine(db=session, publisher=publisher).transition_request(first.id, "accept", Actor.TRAINER)

    retry = ledger.fan_out(training.id, [booked, other, seed.trainers[2].id])

    assert retry.created == []
    assert retry.duplicates == [booked]
    assert retry.rejected == [other, seed.trainers[2].id]
    assert session.query(TrainingRequest).filter(TrainingRequest.training_id == training.id).count() == 2
    assert session.get(Training, training.id).accepted_request_id == first.id


def test_list_requests_joins_identity_newest_first(session, seed, make_training, publisher):
    ledger = RequestLedger(db=session, publisher=publisher)
    older = make_training(title="Helm Deep Dive")
    newer = make_training(title="Service Mesh Basics")
    trainer = seed.trainers[0]
    ledger.fan_out(older.id, [trainer.id])
    ledger.fan_out(newer.id, [trainer.id])

    rows = ledger.list_requests(trainer_id=trainer.id)

    assert [row.training.title for row in rows] == ["Service Mesh Basics", "Helm Deep Dive"]
    assert rows[0].training.topic.name == "Kubernetes Fundamentals"
    assert rows[0].training.company.company_name == "Acme Learning"
    assert rows[0].trainer.full_name == "Ada Lovelace"

    assert len(ledger.list_requests(company_id=seed.company.id)) == 2
    assert ledger.list_requests(company_id=seed.other_company.id) == []
    assert len(ledger.list_requests(training_id=older.id)) == 1


def test_list_requests_requires_a_filter(session, publisher):
    with pytest.raises(ValidationError):
        RequestLedger(db=session, publisher=publisher).list_requests()


def test_get_request_unknown(session, publisher):
    with pytest.raises(NotFoundError):
        RequestLedger(db=session, publisher=publisher).get_request(12345)
