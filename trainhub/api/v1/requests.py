"""Training request (negotiation) endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header, Query, status

from trainhub.api.v1._authz import (
    authorize,
    ensure_request_access,
    ensure_training_access,
    to_http_exception,
)
from trainhub.auth.rbac import ROLE_COMPANY, ROLE_TRAINER, actor_for_role
from trainhub.core.exceptions import AuthorizationError, TrainHubException
from trainhub.database.db import get_db_session
from trainhub.schemas.requests import (
    FanOutResponse,
    RequestCreateRequest,
    RequestListItem,
    RequestResponse,
    TransitionCommand,
    TransitionResponse,
)
from trainhub.services.negotiation_engine import NegotiationEngine
from trainhub.services.request_ledger import RequestLedger
from trainhub.services.slot_registry import SlotRegistry

router = APIRouter(prefix="/requests", tags=["requests"])


def _scoped_filter(own_id: int | None, requested: int | None, label: str) -> int | None:
    if requested is not None and requested != own_id:
        raise AuthorizationError(f"Cannot list requests of another {label}.")
    return own_id


@router.get("", response_model=list[RequestListItem])
def list_requests(
    trainer_id: int | None = Query(default=None, ge=1),
    company_id: int | None = Query(default=None, ge=1),
    training_id: int | None = Query(default=None, ge=1),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> list[RequestListItem]:
    user = authorize(authorization, scopes=["requests.read"])
    try:
        if user.role == ROLE_TRAINER:
            trainer_id = _scoped_filter(user.party_id, trainer_id, "trainer")
        elif user.role == ROLE_COMPANY:
            company_id = _scoped_filter(user.party_id, company_id, "company")
        with get_db_session() as session:
            rows = RequestLedger(db=session).list_requests(
                trainer_id=trainer_id,
                company_id=company_id,
                training_id=training_id,
            )
            return [RequestListItem.from_request(row) for row in rows]
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=FanOutResponse, status_code=status.HTTP_201_CREATED)
def create_requests(
    payload: RequestCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> FanOutResponse:
    user = authorize(authorization, scopes=["requests.create"])
    try:
        with get_db_session() as session:
            ensure_training_access(user, SlotRegistry(db=session).get_training(payload.training_id))
            result = RequestLedger(db=session).fan_out(
                payload.training_id,
                payload.trainer_ids,
                message=payload.message,
            )
            return FanOutResponse(
                created=[RequestResponse.model_validate(request) for request in result.created],
                duplicates=result.duplicates,
                rejected=result.rejected,
            )
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.get("/{request_id}", response_model=RequestResponse)
def get_request(
    request_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> RequestResponse:
    user = authorize(authorization, scopes=["requests.read"])
    try:
        with get_db_session() as session:
            request = RequestLedger(db=session).get_request(request_id)
            ensure_request_access(user, request)
            return RequestResponse.model_validate(request)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.post("/{request_id}/transition", response_model=TransitionResponse)
def transition_request(
    request_id: int,
    payload: TransitionCommand,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TransitionResponse:
    user = authorize(authorization, scopes=["requests.transition"])
    try:
        actor = actor_for_role(user.role)
        with get_db_session() as session:
            ensure_request_access(user, RequestLedger(db=session).get_request(request_id))
            result = NegotiationEngine(db=session).transition_request(
                request_id,
                payload.action,
                actor,
                price=payload.price,
                expected_version=payload.expected_version,
            )
            return TransitionResponse(
                request=RequestResponse.model_validate(result.request),
                auto_declined_ids=result.auto_declined_ids,
            )
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc
