"""Backends — Common database contract and schema descriptors.

Every backend (SQL or document store) implements :class:`BaseDatabase`.
All operations are coroutines; blocking drivers are expected to push their
I/O onto a worker thread with ``asyncio.to_thread()``.

Schema descriptors serialise to camelCase dictionaries, which is the shape
returned by the resource endpoints::

    {"databaseName": "app.db",
     "tables": [{"tableName": "users",
                 "columns": [{"name": "id", "type": "INTEGER",
                              "nullable": false, "isPrimaryKey": true,
                              "defaultValue": null}]}]}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dbbridge.exceptions import DatabaseNotConnectedError


class ConnectionConfig(BaseModel):
    """Base for backend settings; accepts ``read_only`` and ``readOnly`` alike."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


@dataclass
class ColumnInfo:
    name: str
    type: str
    nullable: bool = True
    is_primary_key: bool = False
    default_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "isPrimaryKey": self.is_primary_key,
            "defaultValue": self.default_value,
        }


@dataclass
class TableSchema:
    table_name: str
    columns: list[ColumnInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tableName": self.table_name,
            "columns": [c.to_dict() for c in self.columns],
        }


@dataclass
class SchemaInfo:
    database_name: str
    tables: list[TableSchema] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "databaseName": self.database_name,
            "tables": [t.to_dict() for t in self.tables],
        }


class BaseDatabase(ABC):
    """Abstract base class for one live database connection.

    Subclasses set :attr:`db_type` and implement the seven operations.
    ``get_schema`` has a default built from ``get_tables`` and
    ``get_table_schema``.
    """

    db_type: ClassVar[str] = ""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection.  Safe to call when already closed."""

    @property
    @abstractmethod
    def is_connected(self) -> bool: ...

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Human-readable name reported in ``SchemaInfo``."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def query(self, query: str, params: list[Any] | None = None) -> Any:
        """Run a read and return its rows / documents."""

    @abstractmethod
    async def execute(self, query: str, params: list[Any] | None = None) -> None:
        """Run a statement whose result is not needed."""

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_tables(self) -> list[str]: ...

    @abstractmethod
    async def get_table_schema(self, table_name: str) -> TableSchema: ...

    async def get_schema(self) -> SchemaInfo:
        tables = await self.get_tables()
        schemas = [await self.get_table_schema(name) for name in tables]
        return SchemaInfo(database_name=self.database_name, tables=schemas)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise DatabaseNotConnectedError(self.database_name)
