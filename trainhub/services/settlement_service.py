"""Completion & settlement trigger: one invoice per completed booking."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from trainhub.core.enums import InvoiceStatus, RequestStatus, TrainingStatus
from trainhub.core.exceptions import DatabaseError, InvalidStateError, NotFoundError
from trainhub.database.models import Invoice, Training, TrainingRequest
from trainhub.services.base_service import BaseService
from trainhub.services.negotiation_engine import negotiated_price
from trainhub.utils.ids import build_invoice_number

logger = logging.getLogger(__name__)


class SettlementService(BaseService):
    """Creates invoices for completed trainings; safe to call repeatedly."""

    def settle(self, training_id: int) -> Invoice | None:
        training = self.db.get(Training, training_id)
        if training is None:
            raise NotFoundError(f"Training not found: {training_id}")
        if training.status != TrainingStatus.COMPLETED.value:
            raise InvalidStateError(f"Training {training_id} is {training.status}; only completed trainings settle.")

        accepted = (
            self.db.query(TrainingRequest)
            .filter(
                TrainingRequest.training_id == training_id,
                TrainingRequest.status == RequestStatus.ACCEPTED.value,
            )
            .one_or_none()
        )
        if accepted is None:
            logger.info(
                "settlement.skipped.no_accepted_request",
                extra={"event": "settlement.skipped.no_accepted_request", "training_id": training_id},
            )
            return None

        existing = self.get_invoice_for_request(accepted.id)
        if existing is not None:
            return existing

        invoice_date = training.end_date + timedelta(days=1)
        invoice = Invoice(
            invoice_number=build_invoice_number(invoice_date, accepted.id),
            training_id=training.id,
            training_request_id=accepted.id,
            trainer_id=accepted.trainer_id,
            company_id=training.company_id,
            amount=negotiated_price(accepted),
            invoice_date=invoice_date,
            status=InvoiceStatus.ISSUED.value,
        )
        self.db.add(invoice)
        try:
            self.commit()
        except IntegrityError:
            # A concurrent settlement inserted the invoice first.
            existing = self.get_invoice_for_request(accepted.id)
            if existing is None:
                raise DatabaseError(f"Invoice insert for request {accepted.id} failed.")
            return existing

        logger.info(
            "settlement.invoice_created",
            extra={
                "event": "settlement.invoice_created",
                "training_id": training.id,
                "request_id": accepted.id,
                "invoice_number": invoice.invoice_number,
                "amount": invoice.amount,
            },
        )
        return invoice

    def get_invoice_for_request(self, request_id: int) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.training_request_id == request_id).first()

    def list_invoices(
        self,
        training_id: int | None = None,
        trainer_id: int | None = None,
        company_id: int | None = None,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)
        if training_id is not None:
            query = query.filter(Invoice.training_id == training_id)
        if trainer_id is not None:
            query = query.filter(Invoice.trainer_id == trainer_id)
        if company_id is not None:
            query = query.filter(Invoice.company_id == company_id)
        return query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).all()

    def find_unsettled_trainings(self) -> list[int]:
        """Completed trainings with an accepted booking but no invoice yet."""
        rows = (
            self.db.query(Training.id)
            .join(TrainingRequest, TrainingRequest.training_id == Training.id)
            .outerjoin(Invoice, Invoice.training_request_id == TrainingRequest.id)
            .filter(
                Training.status == TrainingStatus.COMPLETED.value,
                TrainingRequest.status == RequestStatus.ACCEPTED.value,
                Invoice.id.is_(None),
            )
            .order_by(Training.id)
            .all()
        )
        return [row.id for row in rows]
