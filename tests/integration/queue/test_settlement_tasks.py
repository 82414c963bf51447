from __future__ import annotations

from datetime import date

from trainhub.core.enums import Actor
from trainhub.database.models import Invoice
from trainhub.services.negotiation_engine import NegotiationEngine
from trainhub.services.request_ledger import RequestLedger
from trainhub.services.settlement_service import SettlementService
from trainhub.services.slot_registry import SlotRegistry, SlotSpec
from trainhub.tasks.celery_app import celery_app
from trainhub.tasks.settlement_tasks import retry_unsettled_trainings, settle_training_task


def _completed_without_invoice(db, seed, monkeypatch) -> int:
    registry = SlotRegistry(db=db)
    training = registry.create_slot(
        SlotSpec(
            title="Observability Bootcamp",
            topic_id=seed.topic.id,
            company_id=seed.company.id,
            start_date=date(2026, 6, 1),
            end_date=date(2026, 6, 3),
            daily_rate=1000.0,
            status="PUBLISHED",
        )
    )
    (request,) = RequestLedger(db=db).fan_out(training.id, [seed.trainers[0].id]).created
    NegotiationEngine(db=db).transition_request(request.id, "accept", Actor.TRAINER)

    def _unavailable(self, training_id):
        raise ConnectionError("invoice store unavailable")

    monkeypatch.setattr(SettlementService, "settle", _unavailable)
    result = registry.mark_completed(training.id)
    monkeypatch.undo()
    assert result.settlement_error == "invoice store unavailable"
    return training.id


def test_beat_schedule_runs_the_retry_sweep():
    schedule = celery_app.conf.beat_schedule["settlement-retry-unsettled"]
    assert schedule["task"] == retry_unsettled_trainings.name


def test_retry_sweep_settles_completed_trainings(app_database, app_seed, monkeypatch):
    with app_database.get_db_session() as db:
        training_id = _completed_without_invoice(db, app_seed, monkeypatch)

    summary = retry_unsettled_trainings()

    assert summary["status"] == "succeeded"
    assert [item["training_id"] for item in summary["settled"]] == [training_id]
    assert summary["settled"][0]["invoice"]["amount"] == 1000.0
    with app_database.get_db_session() as db:
        assert db.query(Invoice).count() == 1
        assert SettlementService(db=db).find_unsettled_trainings() == []

    assert retry_unsettled_trainings()["settled"] == []


def test_retry_sweep_reports_failures_and_continues(app_database, app_seed, monkeypatch):
    with app_database.get_db_session() as db:
        training_id = _completed_without_invoice(db, app_seed, monkeypatch)

    def _still_down(self, training_id):
        raise ConnectionError("still down")

    monkeypatch.setattr(SettlementService, "settle", _still_down)
    summary = retry_unsettled_trainings()

    assert summary["status"] == "partial"
    assert summary["failed"] == [{"training_id": training_id, "error": "still down"}]


def test_settle_training_task_creates_the_invoice(app_database, app_seed, monkeypatch):
    with app_database.get_db_session() as db:
        training_id = _completed_without_invoice(db, app_seed, monkeypatch)

    result = settle_training_task(training_id)

    assert result["status"] == "succeeded"
    assert result["invoice"]["invoice_number"].startswith("INV-20260604-")
