"""Invoice endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header, Query

from trainhub.api.v1._authz import authorize, to_http_exception
from trainhub.auth.rbac import ROLE_COMPANY, ROLE_TRAINER
from trainhub.core.exceptions import TrainHubException
from trainhub.database.db import get_db_session
from trainhub.schemas.invoices import InvoiceResponse
from trainhub.services.settlement_service import SettlementService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=list[InvoiceResponse])
def list_invoices(
    training_id: int | None = Query(default=None, ge=1),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> list[InvoiceResponse]:
    user = authorize(authorization, scopes=["invoices.read"])
    try:
        with get_db_session() as session:
            rows = SettlementService(db=session).list_invoices(
                training_id=training_id,
                trainer_id=user.party_id if user.role == ROLE_TRAINER else None,
                company_id=user.party_id if user.role == ROLE_COMPANY else None,
            )
            return [InvoiceResponse.model_validate(row) for row in rows]
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc
