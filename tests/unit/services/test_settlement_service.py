from __future__ import annotations

from datetime import date

import pytest

from trainhub.core.enums import Actor, InvoiceStatus
from trainhub.core.exceptions import InvalidStateError, NotFoundError
from trainhub.services.negotiation_engine import NegotiationEngine
from trainhub.services.request_ledger import RequestLedger
from trainhub.services.settlement_service import SettlementService
from trainhub.services.slot_registry import SlotRegistry
from trainhub.utils.ids import build_invoice_number


def _book(session, seed, make_training, publisher, company_price=None):
    training = make_training(daily_rate=800.0, end_date=date(2026, 3, 11))
    (request,) = RequestLedger(db=session, publisher=publisher).fan_out(training.id, [seed.trainers[0].id]).created
    engine = NegotiationEngine(db=session, publisher=publisher)
    if company_price is None:
        engine.transition_request(request.id, "accept", Actor.TRAINER)
    else:
        engine.transition_request(request.id, "company_counter", Actor.COMPANY, price=company_price)
        engine.transition_request(request.id, "accept_company_counter", Actor.TRAINER)
        engine.transition_request(request.id, "confirm", Actor.COMPANY)
    return training, request


def test_invoice_number_format():
    assert build_invoice_number(date(2026, 3, 12), 7) == "INV-20260312-0007"
    assert build_invoice_number(date(2026, 3, 12), 12345) == "INV-20260312-12345"


def test_settle_requires_completed_training(session, seed, make_training, publisher):
    training, _request = _book(session, seed, make_training, publisher)
    service = SettlementService(db=session)

    with pytest.raises(InvalidStateError):
        service.settle(training.id)
    with pytest.raises(NotFoundError):
        service.settle(9999)


def test_settle_uses_company_counter_and_is_idempotent(session, seed, make_training, publisher, monkeypatch):
    training, request = _book(session, seed, make_training, publisher, company_price=900)
    monkeypatch.setattr(SettlementService, "settle", lambda self, training_id: None)
    SlotRegistry(db=session, publisher=publisher).mark_completed(training.id)
    monkeypatch.undo()
    service = SettlementService(db=session)

    first = service.settle(training.id)
    second = service.settle(training.id)

    assert first.id == second.id
    assert first.amount == 900.0
    assert first.status == InvoiceStatus.ISSUED.value
    assert first.trainer_id == request.trainer_id
    assert first.company_id == training.company_id
    assert service.get_invoice_for_request(request.id).id == first.id
    assert [row.id for row in service.list_invoices(training_id=training.id)] == [first.id]
    assert service.list_invoices(company_id=seed.other_company.id) == []
    assert service.find_unsettled_trainings() == []


def test_settle_without_accepted_request_is_a_noop(session, seed, make_training, publisher):
    training = make_training()
    RequestLedger(db=session, publisher=publisher).fan_out(training.id, [seed.trainers[0].id])

    result = SlotRegistry(db=session, publisher=publisher).mark_completed(training.id)

    assert result.invoice is None
    assert result.settlement_error is None
    assert SettlementService(db=session).list_invoices() == []


def test_concurrent_settlement_resolves_to_existing_invoice(session_factory, session, seed, make_training, publisher):
    training, request = _book(session, seed, make_training, publisher)
    SlotRegistry(db=session, publisher=publisher).mark_completed(training.id)
    existing = SettlementService(db=session).get_invoice_for_request(request.id)

    late = session_factory()
    try:
        service = SettlementService(db=late)
        # Simulate a writer that checked for an invoice before the other one committed.
        original = SettlementService.get_invoice_for_request
        calls = {"count": 0}

        def _first_lookup_misses(self, request_id):
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return original(self, request_id)

        service.get_invoice_for_request = _first_lookup_misses.__get__(service)
        resolved = service.settle(training.id)
    finally:
        late.close()

    assert resolved.id == existing.id
    assert calls["count"] == 2
