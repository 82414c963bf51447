"""Training slot endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header, status

from trainhub.api.v1._authz import authorize, ensure_training_access, to_http_exception
from trainhub.auth.rbac import ROLE_COMPANY
from trainhub.core.dependencies import CurrentUser
from trainhub.core.enums import TrainingStatus
from trainhub.core.exceptions import AuthorizationError, TrainHubException, ValidationError
from trainhub.database.db import get_db_session
from trainhub.schemas.invoices import InvoiceResponse
from trainhub.schemas.trainings import (
    CompletionResponse,
    TrainingCreateRequest,
    TrainingPriceUpdateRequest,
    TrainingResponse,
)
from trainhub.services.settlement_service import SettlementService
from trainhub.services.slot_registry import SlotRegistry, SlotSpec

router = APIRouter(prefix="/trainings", tags=["trainings"])


def _owning_company(user: CurrentUser, requested: int | None) -> int:
    if user.role == ROLE_COMPANY:
        if requested is not None and requested != user.party_id:
            raise AuthorizationError("Companies can only create their own trainings.")
        return user.party_id
    if requested is None:
        raise ValidationError("company_id is required.")
    return requested


@router.post("", response_model=TrainingResponse, status_code=status.HTTP_201_CREATED)
def create_training(
    payload: TrainingCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    user = authorize(authorization, scopes=["trainings.write"])
    try:
        spec = SlotSpec(
            title=payload.title,
            topic_id=payload.topic_id,
            company_id=_owning_company(user, payload.company_id),
            start_date=payload.start_date,
            end_date=payload.end_date,
            daily_rate=payload.daily_rate,
            start_time=payload.start_time,
            end_time=payload.end_time,
            location=payload.location,
            participant_count=payload.participant_count,
            status=TrainingStatus.PUBLISHED.value if payload.publish else TrainingStatus.DRAFT.value,
        )
        with get_db_session() as session:
            training = SlotRegistry(db=session).create_slot(spec)
            return TrainingResponse.model_validate(training)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.get("/{training_id}", response_model=TrainingResponse)
def get_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    user = authorize(authorization, scopes=["trainings.read"])
    try:
        with get_db_session() as session:
            training = SlotRegistry(db=session).get_training(training_id)
            ensure_training_access(user, training)
            return TrainingResponse.model_validate(training)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{training_id}/price", response_model=TrainingResponse)
def update_price(
    training_id: int,
    payload: TrainingPriceUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    user = authorize(authorization, scopes=["trainings.write"])
    try:
        with get_db_session() as session:
            registry = SlotRegistry(db=session)
            ensure_training_access(user, registry.get_training(training_id))
            training = registry.update_asking_price(training_id, payload.daily_rate)
            return TrainingResponse.model_validate(training)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


def _lifecycle(training_id: int, authorization: str | None, operation: str) -> TrainingResponse:
    user = authorize(authorization, scopes=["trainings.write"])
    try:
        with get_db_session() as session:
            registry = SlotRegistry(db=session)
            ensure_training_access(user, registry.get_training(training_id))
            training = getattr(registry, operation)(training_id)
            return TrainingResponse.model_validate(training)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.post("/{training_id}/publish", response_model=TrainingResponse)
def publish_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    return _lifecycle(training_id, authorization, "publish")


@router.post("/{training_id}/start", response_model=TrainingResponse)
def start_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    return _lifecycle(training_id, authorization, "start")


@router.post("/{training_id}/cancel", response_model=TrainingResponse)
def cancel_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> TrainingResponse:
    return _lifecycle(training_id, authorization, "cancel")


@router.post("/{training_id}/complete", response_model=CompletionResponse)
def complete_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> CompletionResponse:
    user = authorize(authorization, scopes=["trainings.write"])
    try:
        with get_db_session() as session:
            registry = SlotRegistry(db=session)
            ensure_training_access(user, registry.get_training(training_id))
            result = registry.mark_completed(training_id)
            return CompletionResponse(
                training=TrainingResponse.model_validate(result.training),
                invoice=InvoiceResponse.model_validate(result.invoice) if result.invoice else None,
                settlement_error=result.settlement_error,
            )
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc


@router.post("/{training_id}/settle")
def settle_training(
    training_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict:
    user = authorize(authorization, scopes=["invoices.settle"])
    try:
        with get_db_session() as session:
            ensure_training_access(user, SlotRegistry(db=session).get_training(training_id))
            invoice = SettlementService(db=session).settle(training_id)
            return {
                "training_id": training_id,
                "invoice": InvoiceResponse.model_validate(invoice).model_dump(mode="json") if invoice else None,
            }
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc
