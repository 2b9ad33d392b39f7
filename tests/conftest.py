"""Shared pytest fixtures for the dbbridge test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from dbbridge.config import GatewayConfig, Settings, override_settings
from dbbridge.docstore.store import DocumentStore
from dbbridge.exceptions import StoreOperationError
from dbbridge.gateway import DatabaseGateway


# ---------------------------------------------------------------------------
# Recording document store
# ---------------------------------------------------------------------------


class FakeDocumentStore(DocumentStore):
    """In-memory DocumentStore that records every primitive call.

    ``calls`` holds ``(primitive, args)`` tuples, where ``args`` excludes the
    collection handle; ``collections`` lists resolved collection names in
    order.  Set ``fail_with`` to make every primitive raise
    ``StoreOperationError`` with that message; ``responses`` maps a primitive
    name to the value it returns.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.collections: list[str] = []
        self.responses: dict[str, Any] = {}
        self.fail_with: str | None = None

    def resolve_collection(self, name: str) -> Any:
        self.collections.append(name)
        return f"<collection {name}>"

    async def _record(self, primitive: str, *args: Any) -> Any:
        self.calls.append((primitive, args))
        if self.fail_with is not None:
            raise StoreOperationError(self.fail_with, operation=primitive)
        return self.responses.get(primitive)

    async def find(self, handle, filter, options):
        return await self._record("find", filter, options)

    async def find_one(self, handle, filter, options):
        return await self._record("find_one", filter, options)

    async def aggregate(self, handle, stages):
        return await self._record("aggregate", stages)

    async def count(self, handle, filter):
        return await self._record("count", filter)

    async def distinct(self, handle, field, filter):
        return await self._record("distinct", field, filter)

    async def insert_one(self, handle, document, options):
        return await self._record("insert_one", document, options)

    async def insert_many(self, handle, documents, options):
        return await self._record("insert_many", documents, options)

    async def update_one(self, handle, filter, update, options):
        return await self._record("update_one", filter, update, options)

    async def update_many(self, handle, filter, update, options):
        return await self._record("update_many", filter, update, options)

    async def replace_one(self, handle, filter, replacement, options):
        return await self._record("replace_one", filter, replacement, options)

    async def delete_one(self, handle, filter, options):
        return await self._record("delete_one", filter, options)

    async def delete_many(self, handle, filter, options):
        return await self._record("delete_many", filter, options)

    async def run_command(self, document):
        return await self._record("run_command", document)


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


# ---------------------------------------------------------------------------
# Settings & gateway
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        logging={"level": "debug", "format": "console", "file": None},
        gateway={"max_connections": 3, "schema_sample_size": 5},
    )
    override_settings(settings)
    return settings


@pytest.fixture
def gateway() -> DatabaseGateway:
    # An empty environment keeps MCP_* variables on the host out of the tests.
    return DatabaseGateway(GatewayConfig(max_connections=3), environ={})


@pytest.fixture
def sqlite_file(tmp_path: Path) -> Path:
    return tmp_path / "app.db"
