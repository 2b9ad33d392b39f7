"""GET /health — liveness plus connection count."""

from __future__ import annotations

import time

from fastapi import APIRouter

from dbbridge import __version__
from dbbridge.api.dependencies import GatewayDep
from dbbridge.api.schemas import HealthResponse
from dbbridge.backends import BackendRegistry

router = APIRouter(tags=["health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Server health check")
async def health(gateway: GatewayDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        connections=len(gateway.list_connections()),
        backends=BackendRegistry.list_backends(),
    )
