"""dbbridge — Connection gateway (tool and resource surface).

``DatabaseGateway`` owns every live backend, keyed by a caller-chosen
``connection_id``.  It exposes:

Tools (never raise; failures come back as ``ToolResult(is_error=True)``):
    connect-database     connect_database(connection_id, type, config)
    disconnect-database  disconnect_database(connection_id)
    execute-query        execute_query(connection_id, query, params)
    execute-update       execute_update(connection_id, query, params)

Resources (raise ``DbBridgeError`` subclasses):
    database-schema      database://{connection_id}/schema
    tables-list          database://{connection_id}/tables
    table-schema         database://{connection_id}/tables/{table_name}
"""

from __future__ import annotations

import asyncio
import datetime as dt
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from dbbridge.backends import BaseDatabase, SchemaInfo, TableSchema, create_database
from dbbridge.config import GatewayConfig, apply_env_overrides
from dbbridge.exceptions import (
    ConnectionExistsError,
    ConnectionNotFoundError,
    DbBridgeError,
    GatewayError,
)
from dbbridge.logging import connection_context, get_logger

log = get_logger(__name__)

TOOL_NAMES = ("connect-database", "disconnect-database", "execute-query", "execute-update")

_RESOURCE_URI = re.compile(r"^database://(?P<id>[^/]+)/(?P<kind>schema|tables)(?:/(?P<table>.+))?$")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class TextContent:
    text: str
    type: str = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolResult:
    content: list[TextContent] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text)])

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(text)], is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(c.text for c in self.content)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"content": [c.to_dict() for c in self.content]}
        if self.is_error:
            data["isError"] = True
        return data


@dataclass
class ResourceContents:
    uri: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "text": self.text}


def _json_default(value: Any) -> Any:
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    return str(value)


def to_json(value: Any) -> str:
    """Pretty-print a result for a text payload (ObjectId, dates → strings)."""
    return json.dumps(value, indent=2, default=_json_default)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class DatabaseGateway:
    """Registry of live database connections."""

    def __init__(
        self,
        config: GatewayConfig | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._environ = environ
        self._databases: dict[str, BaseDatabase] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def list_connections(self) -> list[str]:
        return sorted(self._databases)

    def get_database(self, connection_id: str) -> BaseDatabase:
        try:
            return self._databases[connection_id]
        except KeyError:
            raise ConnectionNotFoundError(connection_id) from None

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def connect_database(
        self, connection_id: str, db_type: str, config: Mapping[str, Any] | None = None
    ) -> ToolResult:
        try:
            await self._connect(connection_id, db_type, dict(config or {}))
        except Exception as exc:
            return self._failure("connect", "Error connecting to database", connection_id, exc)
        return ToolResult.ok(
            f'Successfully connected to {db_type} database with ID "{connection_id}"'
        )

    async def disconnect_database(self, connection_id: str) -> ToolResult:
        try:
            async with self._lock:
                db = self.get_database(connection_id)
                await db.disconnect()
                del self._databases[connection_id]
        except Exception as exc:
            return self._failure(
                "disconnect", "Error disconnecting from database", connection_id, exc
            )
        log.info("connection_closed", connection_id=connection_id)
        return ToolResult.ok(f'Successfully disconnected from database with ID "{connection_id}"')

    async def execute_query(
        self, connection_id: str, query: str, params: list[Any] | None = None
    ) -> ToolResult:
        with connection_context(connection_id):
            try:
                db = self.get_database(connection_id)
                results = await db.query(query, list(params or []))
                return ToolResult.ok(to_json(results))
            except Exception as exc:
                return self._failure("query", "Error executing query", connection_id, exc)

    async def execute_update(
        self, connection_id: str, query: str, params: list[Any] | None = None
    ) -> ToolResult:
        with connection_context(connection_id):
            try:
                db = self.get_database(connection_id)
                await db.execute(query, list(params or []))
                return ToolResult.ok("Operation completed successfully")
            except Exception as exc:
                return self._failure("update", "Error executing update", connection_id, exc)

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolResult:
        """Invoke a tool by its wire name with camelCase arguments."""
        connection_id = str(arguments.get("connectionId") or "")
        if name == "connect-database":
            return await self.connect_database(
                connection_id, str(arguments.get("type") or ""), arguments.get("config") or {}
            )
        if name == "disconnect-database":
            return await self.disconnect_database(connection_id)
        if name == "execute-query":
            return await self.execute_query(
                connection_id, str(arguments.get("query") or ""), arguments.get("params")
            )
        if name == "execute-update":
            return await self.execute_update(
                connection_id, str(arguments.get("query") or ""), arguments.get("params")
            )
        return ToolResult.error(f"Unknown tool: {name}")

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def database_schema(self, connection_id: str) -> SchemaInfo:
        return await self.get_database(connection_id).get_schema()

    async def tables_list(self, connection_id: str) -> list[str]:
        return await self.get_database(connection_id).get_tables()

    async def table_schema(self, connection_id: str, table_name: str) -> TableSchema:
        return await self.get_database(connection_id).get_table_schema(table_name)

    async def read_resource(self, uri: str) -> ResourceContents:
        """Resolve a ``database://`` resource URI to its JSON text."""
        m = _RESOURCE_URI.match(uri)
        if m is None:
            raise GatewayError(f"Unknown resource URI: {uri}", context={"uri": uri})
        connection_id, kind, table = m.group("id"), m.group("kind"), m.group("table")

        if kind == "schema" and table is None:
            payload: Any = (await self.database_schema(connection_id)).to_dict()
        elif kind == "tables" and table is None:
            payload = {"tables": await self.tables_list(connection_id)}
        elif kind == "tables":
            payload = (await self.table_schema(connection_id, table)).to_dict()
        else:
            raise GatewayError(f"Unknown resource URI: {uri}", context={"uri": uri})
        return ResourceContents(uri=uri, text=to_json(payload))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close_all(self) -> None:
        """Disconnect every backend.  Errors are logged and do not stop the sweep."""
        async with self._lock:
            for connection_id, db in list(self._databases.items()):
                try:
                    await db.disconnect()
                except Exception as exc:
                    log.warning("connection_close_failed", connection_id=connection_id, error=str(exc))
            self._databases.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _connect(self, connection_id: str, db_type: str, config: dict[str, Any]) -> None:
        async with self._lock:
            if connection_id in self._databases:
                raise ConnectionExistsError(connection_id)
            if len(self._databases) >= self._config.max_connections:
                raise GatewayError(
                    f"Maximum connections ({self._config.max_connections}) reached. "
                    "Disconnect an existing connection first.",
                    context={"connection_id": connection_id},
                )
            merged = apply_env_overrides(db_type, config, self._environ)
            if db_type == "mongodb" and "sampleSize" not in merged:
                merged.setdefault("sample_size", self._config.schema_sample_size)
            db = create_database(db_type, merged)
            await db.connect()
            self._databases[connection_id] = db
        log.info("connection_opened", connection_id=connection_id, type=db_type)

    @staticmethod
    def _failure(action: str, prefix: str, connection_id: str, exc: Exception) -> ToolResult:
        message = exc.message if isinstance(exc, DbBridgeError) else str(exc)
        if isinstance(exc, DbBridgeError):
            log.warning(
                "tool_failed",
                action=action,
                connection_id=connection_id,
                error_type=type(exc).__name__,
                error=message,
            )
        else:
            log.exception("tool_crashed", action=action, connection_id=connection_id)
        return ToolResult.error(f"{prefix}: {message}")
