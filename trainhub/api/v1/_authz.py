"""Shared authorization and error-mapping helpers for API v1 route modules."""

from __future__ import annotations

from fastapi import HTTPException, status

from trainhub.auth.rbac import ROLE_COMPANY, ROLE_TRAINER, require_scopes
from trainhub.core.config import get_config
from trainhub.core.dependencies import CurrentUser, get_current_user
from trainhub.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    TrainHubException,
    ValidationError,
)
from trainhub.database.models import Training, TrainingRequest

# Most specific first: TerminalStateError is an InvalidStateError.
_ERROR_STATUS: tuple[tuple[type[TrainHubException], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 409),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
)


def _extract_bearer_token(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        raise AuthenticationError("Authorization header is required.")
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip()


def authorize(authorization: str | None, scopes: list[str]) -> CurrentUser:
    try:
        token = _extract_bearer_token(authorization)
        user = get_current_user(token=token, settings=get_config())
        require_scopes(user.role, scopes)
    except TrainHubException as exc:
        raise to_http_exception(exc) from exc
    return user


def map_domain_error(exc: Exception) -> tuple[int, str]:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code, str(exc)
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error."


def to_http_exception(exc: Exception) -> HTTPException:
    code, detail = map_domain_error(exc)
    return HTTPException(status_code=code, detail=detail)


def ensure_training_access(user: CurrentUser, training: Training) -> None:
    """Companies only see their own trainings; trainers and admins see all."""
    if user.role == ROLE_COMPANY and training.company_id != user.party_id:
        raise AuthorizationError(f"Training {training.id} belongs to another company.")


def ensure_request_access(user: CurrentUser, request: TrainingRequest) -> None:
    if user.role == ROLE_TRAINER and request.trainer_id != user.party_id:
        raise AuthorizationError(f"Request {request.id} belongs to another trainer.")
    if user.role == ROLE_COMPANY and request.training.company_id != user.party_id:
        raise AuthorizationError(f"Request {request.id} is for another company's training.")
