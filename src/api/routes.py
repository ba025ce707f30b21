"""Top-level API router."""

from __future__ import annotations

from fastapi import APIRouter

from api import calls_routes, messaging_routes, relay_routes, twilio_routes
from api.schemas import HealthResponse

router = APIRouter()
router.include_router(twilio_routes.router)
router.include_router(calls_routes.router)
router.include_router(messaging_routes.router)
router.include_router(relay_routes.router)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health() -> HealthResponse:
    return HealthResponse()
