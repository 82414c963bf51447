"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from trainhub.api.v1 import health, invoices, requests, trainings
from trainhub.core.config import get_config

api_router = APIRouter(prefix=get_config().API_PREFIX)
api_router.include_router(health.router)
api_router.include_router(trainings.router)
api_router.include_router(requests.router)
api_router.include_router(invoices.router)


def get_api_router() -> APIRouter:
    return api_router
