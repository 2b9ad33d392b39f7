"""dbbridge — Exception hierarchy.

All exceptions raised by dbbridge inherit from DbBridgeError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    DbBridgeError
    ├── TranslationError
    │   ├── MalformedInputError
    │   ├── AmbiguousShapeError
    │   ├── MissingCollectionError
    │   ├── MissingRequiredArgumentError
    │   ├── UnsupportedMethodError
    │   └── StoreOperationError
    ├── BackendError
    │   ├── DatabaseNotConnectedError
    │   ├── UnsupportedDatabaseError
    │   ├── BackendLoadError
    │   └── QueryExecutionError
    └── GatewayError
        ├── ConnectionNotFoundError
        └── ConnectionExistsError
"""

from __future__ import annotations

from typing import Any

# Raw request text is echoed back in errors, truncated to this many characters.
MAX_ECHOED_TEXT = 200


def _bounded(text: str | None) -> str | None:
    if text is None or len(text) <= MAX_ECHOED_TEXT:
        return text
    return text[:MAX_ECHOED_TEXT] + "..."


class DbBridgeError(Exception):
    """Base exception for all dbbridge errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Document-store translation layer
# ---------------------------------------------------------------------------


class TranslationError(DbBridgeError):
    """Base for every failure reported by ``translate_read`` / ``translate_write``."""

    kind: str = "TranslationError"


class MalformedInputError(TranslationError):
    """The text is neither shell syntax nor parseable structured text."""

    kind = "MalformedInput"

    def __init__(self, raw_text: str, reason: str = "") -> None:
        bounded = _bounded(raw_text)
        message = f"Invalid query format: {reason}" if reason else "Invalid query format"
        super().__init__(message, context={"raw_text": bounded, "reason": reason})
        self.raw_text = bounded


class AmbiguousShapeError(TranslationError):
    """Structured text parsed but matches none of the recognized shapes."""

    kind = "AmbiguousOrUnsupportedShape"

    def __init__(self, raw_text: str, reason: str) -> None:
        bounded = _bounded(raw_text)
        super().__init__(
            f"Unsupported query shape: {reason}",
            context={"raw_text": bounded, "reason": reason},
        )
        self.raw_text = bounded


class MissingCollectionError(TranslationError):
    """No collection name could be resolved from any source."""

    kind = "MissingCollection"

    def __init__(self, reason: str = "", collection: str | None = None) -> None:
        super().__init__(
            reason
            or "Collection name is required as the first parameter when "
            "the query does not name one",
            context={"collection": collection},
        )
        self.collection = collection


class MissingRequiredArgumentError(TranslationError):
    """A method was invoked without an argument it cannot do without."""

    kind = "MissingRequiredArgument"

    def __init__(self, method: str, argument: str) -> None:
        super().__init__(
            f"{method} requires a {argument} parameter",
            context={"method": method, "argument": argument},
        )
        self.method = method
        self.argument = argument


class UnsupportedMethodError(TranslationError):
    """The method has no primitive and the generic command fallback failed."""

    kind = "UnsupportedMethod"

    def __init__(self, method: str, cause: str = "") -> None:
        super().__init__(
            f"Unsupported MongoDB method: {method}",
            context={"method": method, "cause": cause},
        )
        self.method = method
        self.cause = cause


class StoreOperationError(TranslationError):
    """The underlying store primitive failed. ``message`` is the store's own."""

    kind = "StoreOperationFailed"

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(message, context={"operation": operation})
        self.operation = operation


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class BackendError(DbBridgeError):
    """Base for backend lifecycle and driver errors."""


class DatabaseNotConnectedError(BackendError):
    """An operation was attempted before ``connect()``."""

    def __init__(self, database: str = "") -> None:
        super().__init__(
            "Database not connected. Call connect() first.",
            context={"database": database},
        )


class UnsupportedDatabaseError(BackendError):
    """No backend is registered under the requested type."""

    def __init__(self, db_type: str, available: list[str] | None = None) -> None:
        super().__init__(
            f"Unsupported database type: {db_type}",
            context={"type": db_type, "available": available or []},
        )
        self.db_type = db_type


class BackendLoadError(BackendError):
    """An optional driver package required by a backend is not installed."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(
            f"Backend '{backend}' could not be loaded: {reason}",
            context={"backend": backend, "reason": reason},
        )
        self.backend = backend


class QueryExecutionError(BackendError):
    """A SQL statement failed inside the driver."""

    def __init__(self, message: str, statement: str | None = None) -> None:
        super().__init__(
            f"Query execution failed: {message}",
            context={"statement": _bounded(statement)},
        )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class GatewayError(DbBridgeError):
    """Base for connection-registry errors."""


class ConnectionNotFoundError(GatewayError):
    def __init__(self, connection_id: str) -> None:
        super().__init__(
            f'Database connection with ID "{connection_id}" not found',
            context={"connection_id": connection_id},
        )
        self.connection_id = connection_id


class ConnectionExistsError(GatewayError):
    def __init__(self, connection_id: str) -> None:
        super().__init__(
            f'Connection with ID "{connection_id}" already exists',
            context={"connection_id": connection_id},
        )
        self.connection_id = connection_id
