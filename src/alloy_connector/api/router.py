"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from alloy_connector.api.routes import (
    actions,
    health,
    webhooks,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(webhooks.router)
api_router.include_router(actions.router)
