"""API layer — Request middleware.

- Request ID injection (X-Request-ID header)
- Structured access logging
- Global exception handler → clean ErrorResponse
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from dbbridge.api.schemas import ErrorResponse
from dbbridge.exceptions import (
    BackendError,
    ConnectionExistsError,
    ConnectionNotFoundError,
    DatabaseNotConnectedError,
    DbBridgeError,
    GatewayError,
    QueryExecutionError,
    StoreOperationError,
    TranslationError,
    UnsupportedDatabaseError,
)
from dbbridge.logging import get_logger

log = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Request-ID to every request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log each request with timing information."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - start) * 1000, 2)

        log.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            request_id=getattr(request.state, "request_id", None),
        )
        return response


def error_status(exc: DbBridgeError) -> tuple[int, str]:
    """Return the HTTP status and error code for *exc*."""
    if isinstance(exc, ConnectionNotFoundError):
        return 404, "connection_not_found"
    if isinstance(exc, ConnectionExistsError):
        return 409, "connection_exists"
    if isinstance(exc, DatabaseNotConnectedError):
        return 409, "not_connected"
    if isinstance(exc, (StoreOperationError, QueryExecutionError)):
        return 502, "backend_failure"
    if isinstance(exc, TranslationError):
        return 400, exc.kind
    if isinstance(exc, UnsupportedDatabaseError):
        return 422, "unsupported_database"
    if isinstance(exc, BackendError):
        return 422, "backend_error"
    if isinstance(exc, GatewayError):
        return 400, "gateway_error"
    return 500, "internal_error"


def build_error_handler() -> Any:
    """Return a FastAPI exception handler for DbBridgeError subclasses."""

    async def handler(request: Request, exc: DbBridgeError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        status_code, code = error_status(exc)

        body = ErrorResponse(
            error=exc.message,
            code=code,
            detail=exc.context or None,
            request_id=request_id,
        )
        return JSONResponse(status_code=status_code, content=body.model_dump())

    return handler
