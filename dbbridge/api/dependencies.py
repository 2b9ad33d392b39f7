"""API layer — FastAPI dependency injection.

The gateway and settings are created once in ``create_app()`` and injected
via FastAPI's dependency system.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from dbbridge.config import Settings
from dbbridge.gateway import DatabaseGateway


def get_gateway(request: Request) -> DatabaseGateway:
    return request.app.state.gateway  # type: ignore[no-any-return]


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


# Shorthand type aliases for route signatures.
GatewayDep = Annotated[DatabaseGateway, Depends(get_gateway)]
ConfigDep = Annotated[Settings, Depends(get_config)]
