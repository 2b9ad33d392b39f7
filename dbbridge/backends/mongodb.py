"""Backends — MongoDB via Motor.

Queries and updates are free-form text handed to the docstore translation
layer (``dbbridge.docstore``); this module owns only the client lifecycle and
schema inference.

MongoDB has no fixed schema, so ``get_table_schema`` samples a handful of
documents and reports every field path it saw:

- nested fields use dotted paths (``address.city``);
- array element fields use ``[]`` (``tags[]``, ``items[].sku``);
- types observed across samples are joined with ``" | "``;
- a field is nullable once a ``None`` value has been seen;
- ``_id`` is the primary key, with default ``"ObjectId"``.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from bson import Decimal128, ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import Field
from pymongo.errors import PyMongoError

from dbbridge.backends.base import BaseDatabase, ColumnInfo, ConnectionConfig, TableSchema
from dbbridge.backends.registry import register_backend
from dbbridge.docstore import MotorDocumentStore, translate_read, translate_write
from dbbridge.exceptions import BackendError, StoreOperationError
from dbbridge.logging import get_logger

log = get_logger(__name__)


class MongoDBConfig(ConnectionConfig):
    uri: str = Field(min_length=1)
    database: str = Field(min_length=1)
    max_pool_size: int = Field(default=10, ge=1, le=500)
    server_selection_timeout_ms: int = Field(default=5000, ge=100)
    sample_size: int = Field(default=10, ge=1, le=1000)


def describe_type(value: Any) -> str:
    """Return the schema type name reported for *value*."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, Decimal, Decimal128)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, ObjectId):
        return "objectId"
    if isinstance(value, (dt.datetime, dt.date)):
        return "date"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def infer_columns(documents: list[dict[str, Any]]) -> list[ColumnInfo]:
    """Infer column descriptors from sampled *documents*."""
    field_types: dict[str, list[str]] = {}
    nullable: set[str] = set()

    def add(path: str, type_name: str) -> None:
        seen = field_types.setdefault(path, [])
        if type_name not in seen:
            seen.append(type_name)

    def walk(prefix: str, doc: dict[str, Any]) -> None:
        for key, value in doc.items():
            path = f"{prefix}.{key}" if prefix else key
            if value is None:
                nullable.add(path)
                add(path, "null")
            elif isinstance(value, list):
                add(path, "array")
                if value:
                    first = value[0]
                    if isinstance(first, dict):
                        walk(f"{path}[]", first)
                    else:
                        add(f"{path}[]", describe_type(first))
            elif isinstance(value, dict):
                add(path, "object")
                walk(path, value)
            else:
                add(path, describe_type(value))

    for document in documents:
        walk("", document)

    return [
        ColumnInfo(
            name=path,
            type=" | ".join(types),
            nullable=path in nullable,
            is_primary_key=path == "_id",
            default_value="ObjectId" if path == "_id" else None,
        )
        for path, types in field_types.items()
    ]


@register_backend("mongodb", config_model=MongoDBConfig)
class MongoDBDatabase(BaseDatabase):
    db_type = "mongodb"

    def __init__(self, config: MongoDBConfig) -> None:
        self.config = config
        self._client: Any = None
        self._store: MotorDocumentStore | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._store is not None

    @property
    def database_name(self) -> str:
        return self.config.database

    @property
    def store(self) -> MotorDocumentStore:
        self._ensure_connected()
        assert self._store is not None
        return self._store

    async def connect(self) -> None:
        if self._store is not None:
            return
        client = None
        try:
            client = AsyncIOMotorClient(
                self.config.uri,
                maxPoolSize=self.config.max_pool_size,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
            )
            await client.admin.command("ping")
        except PyMongoError as exc:
            if client is not None:
                client.close()
            raise BackendError(
                f"Failed to connect to mongodb database: {exc}",
                context={"type": self.db_type, "database": self.config.database},
            ) from exc
        self._client = client
        self._store = MotorDocumentStore(client[self.config.database])
        log.info("database_connected", type=self.db_type, database=self.config.database)

    async def disconnect(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._store = None
        log.info("database_disconnected", type=self.db_type, database=self.config.database)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(self, query: str, params: list[Any] | None = None) -> Any:
        return await translate_read(self.store, query, params or [])

    async def execute(self, query: str, params: list[Any] | None = None) -> None:
        await translate_write(self.store, query, params or [])

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def get_tables(self) -> list[str]:
        database = self.store.database
        try:
            return sorted(await database.list_collection_names())
        except PyMongoError as exc:
            raise StoreOperationError(str(exc), operation="list_collection_names") from exc

    async def get_table_schema(self, table_name: str) -> TableSchema:
        database = self.store.database
        size = self.config.sample_size
        try:
            cursor = database[table_name].find({}).limit(size)
            documents = await cursor.to_list(length=size)
        except PyMongoError as exc:
            raise StoreOperationError(str(exc), operation="find") from exc
        return TableSchema(table_name=table_name, columns=infer_columns(documents))
