"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
The gateway is wired here so that tests can pass their own instance.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dbbridge import __version__
from dbbridge.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    build_error_handler,
)
from dbbridge.api.routes import health, resources, tools
from dbbridge.backends import BackendRegistry
from dbbridge.config import Settings, get_settings
from dbbridge.exceptions import DbBridgeError
from dbbridge.gateway import DatabaseGateway
from dbbridge.logging import configure_logging, get_logger

log = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    gateway: DatabaseGateway | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (used in tests).
        gateway:  Optional pre-built gateway (used in tests).

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    if gateway is None:
        gateway = DatabaseGateway(settings.gateway)

    app = FastAPI(
        title="dbbridge",
        description="Database tool server for SQLite, PostgreSQL, SQL Server and MongoDB.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (outermost applied last)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost", "http://127.0.0.1"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DbBridgeError, build_error_handler())  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(tools.router)
    app.include_router(resources.router)

    app.state.settings = settings
    app.state.gateway = gateway

    @app.on_event("startup")
    async def startup() -> None:
        log.info(
            "server_ready",
            host=settings.server.host,
            port=settings.server.port,
            backends=BackendRegistry.list_backends(),
            max_connections=settings.gateway.max_connections,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("server_stopping", connections=len(gateway.list_connections()))
        await gateway.close_all()

    return app
