"""Health check endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter

from deliberate.server.models import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return service health and what the API can serve."""
    from deliberate import __version__
    from deliberate.reasoning.strategies import available_strategies
    from deliberate.server.app import get_start_time
    from deliberate.server.routes.reasoning import SUPPORTED_PROVIDERS

    return HealthResponse(
        status="ok",
        version=__version__,
        providers=list(SUPPORTED_PROVIDERS),
        strategies=available_strategies(),
        uptime_seconds=time.time() - get_start_time(),
    )
