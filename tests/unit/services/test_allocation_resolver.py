from __future__ import annotations

import pytest

from trainhub.core.enums import Actor, RequestStatus
from trainhub.core.exceptions import ConflictError
from trainhub.database.models import Training, TrainingRequest
from trainhub.services.allocation_resolver import AllocationResolver
from trainhub.services.negotiation_engine import NegotiationEngine
from trainhub.services.request_ledger import RequestLedger


def test_acquire_bumps_version_and_detects_stale_readers(session_factory, make_training):
    training = make_training()
    first = session_factory()
    second = session_factory()
    try:
        mine = first.get(Training, training.id)
        theirs = second.get(Training, training.id)
        seen = mine.allocation_version

        AllocationResolver(first).acquire(mine)
        first.commit()
        assert mine.allocation_version == seen + 1

        with pytest.raises(ConflictError):
            AllocationResolver(second).acquire(theirs)
        second.rollback()
    finally:
        first.close()
        second.close()


def test_claim_is_single_winner(session, seed, make_training, publisher):
    training = make_training()
    winner, loser = RequestLedger(db=session, publisher=publisher).fan_out(
        training.id, [t.id for t in seed.trainers[:2]]
    ).created
    NegotiationEngine(db=session, publisher=publisher).transition_request(winner.id, "accept", Actor.TRAINER)

    with pytest.raises(ConflictError):
        AllocationResolver(session).claim(session.get(Training, training.id), loser)
    session.rollback()
    assert session.get(Training, training.id).accepted_request_id == winner.id


def test_release_requires_the_holder(session, seed, make_training, publisher):
    training = make_training()
    (request,) = RequestLedger(db=session, publisher=publisher).fan_out(training.id, [seed.trainers[0].id]).created

    with pytest.raises(ConflictError):
        AllocationResolver(session).release(session.get(Training, training.id), request)
    session.rollback()


def test_decline_siblings_leaves_terminal_rows_alone(session, seed, make_training, publisher):
    training = make_training()
    ledger = RequestLedger(db=session, publisher=publisher)
    winner, declined, pending = ledger.fan_out(training.id, [t.id for t in seed.trainers]).created
    engine = NegotiationEngine(db=session, publisher=publisher)
    engine.transition_request(declined.id, "decline", Actor.TRAINER)

    result = engine.transition_request(winner.id, "accept", Actor.TRAINER)

    assert result.auto_declined_ids == [pending.id]
    statuses = {
        row.id: (row.status, row.decline_reason)
        for row in session.query(TrainingRequest).filter_by(training_id=training.id)
    }
    assert statuses[declined.id] == (RequestStatus.DECLINED.value, "declined_by_trainer")
    assert statuses[pending.id] == (RequestStatus.DECLINED.value, "slot_filled")
