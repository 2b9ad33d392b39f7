"""Docstore — Store contract and the Motor implementation.

``DocumentStore`` is the only surface the dispatcher talks to.  Each method
maps to exactly one driver primitive; there is no retry or timeout here.

Options arrive in the driver-neutral camelCase spelling used by the shell
(``maxTimeMS``, ``arrayFilters`` …) and are translated to PyMongo keyword
arguments by ``MotorDocumentStore``.  Unknown option keys are dropped.
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pymongo.errors import InvalidName, PyMongoError

from dbbridge.exceptions import MissingCollectionError, StoreOperationError
from dbbridge.logging import get_logger

log = get_logger(__name__)

_FIND_OPTIONS: dict[str, str] = {
    "projection": "projection",
    "sort": "sort",
    "limit": "limit",
    "skip": "skip",
    "hint": "hint",
    "collation": "collation",
    "comment": "comment",
    "maxTimeMS": "max_time_ms",
    "batchSize": "batch_size",
    "allowDiskUse": "allow_disk_use",
}

_WRITE_OPTIONS: dict[str, str] = {
    "upsert": "upsert",
    "hint": "hint",
    "collation": "collation",
    "comment": "comment",
    "ordered": "ordered",
    "arrayFilters": "array_filters",
    "bypassDocumentValidation": "bypass_document_validation",
}


class DocumentStore(ABC):
    """Abstract asynchronous document store."""

    @abstractmethod
    def resolve_collection(self, name: str) -> Any:
        """Return an opaque handle for *name*."""

    @abstractmethod
    async def find(self, handle: Any, filter: dict, options: dict) -> list[dict]: ...

    @abstractmethod
    async def find_one(self, handle: Any, filter: dict, options: dict) -> dict | None: ...

    @abstractmethod
    async def aggregate(self, handle: Any, stages: list[dict]) -> list[dict]: ...

    @abstractmethod
    async def count(self, handle: Any, filter: dict) -> int: ...

    @abstractmethod
    async def distinct(self, handle: Any, field: str, filter: dict) -> list[Any]: ...

    @abstractmethod
    async def insert_one(self, handle: Any, document: dict, options: dict) -> None: ...

    @abstractmethod
    async def insert_many(self, handle: Any, documents: list[dict], options: dict) -> None: ...

    @abstractmethod
    async def update_one(self, handle: Any, filter: dict, update: Any, options: dict) -> None: ...

    @abstractmethod
    async def update_many(self, handle: Any, filter: dict, update: Any, options: dict) -> None: ...

    @abstractmethod
    async def replace_one(
        self, handle: Any, filter: dict, replacement: dict, options: dict
    ) -> None: ...

    @abstractmethod
    async def delete_one(self, handle: Any, filter: dict, options: dict) -> None: ...

    @abstractmethod
    async def delete_many(self, handle: Any, filter: dict, options: dict) -> None: ...

    @abstractmethod
    async def run_command(self, document: dict) -> dict:
        """Submit a database-level command document verbatim."""


# ---------------------------------------------------------------------------
# Motor implementation
# ---------------------------------------------------------------------------

_F = TypeVar("_F", bound=Callable[..., Awaitable[Any]])


def _driver_errors(func: _F) -> _F:
    """Re-raise driver failures as StoreOperationError, message unchanged.

    PyMongo reports bad argument types and unknown keyword options with
    ``TypeError``; those are request errors too.
    """

    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await func(self, *args, **kwargs)
        except (PyMongoError, TypeError) as exc:
            raise StoreOperationError(str(exc), operation=func.__name__) from exc

    return wrapper  # type: ignore[return-value]


def _translate_options(options: dict | None, table: dict[str, str]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for key, value in (options or {}).items():
        target = table.get(key)
        if target is None and key in table.values():
            target = key
        if target is None:
            log.debug("docstore_option_dropped", option=key)
            continue
        if target == "sort" and isinstance(value, dict):
            value = list(value.items())
        elif target == "sort" and isinstance(value, list):
            value = [tuple(pair) if isinstance(pair, list) else pair for pair in value]
        kwargs[target] = value
    return kwargs


class MotorDocumentStore(DocumentStore):
    """DocumentStore over a ``motor.motor_asyncio.AsyncIOMotorDatabase``."""

    def __init__(self, database: Any) -> None:
        self._db = database

    @property
    def database(self) -> Any:
        return self._db

    def resolve_collection(self, name: str) -> Any:
        try:
            return self._db[name]
        except InvalidName as exc:
            raise MissingCollectionError(str(exc), collection=name) from exc

    @_driver_errors
    async def find(self, handle: Any, filter: dict, options: dict) -> list[dict]:
        cursor = handle.find(filter, **_translate_options(options, _FIND_OPTIONS))
        return await cursor.to_list(length=None)

    @_driver_errors
    async def find_one(self, handle: Any, filter: dict, options: dict) -> dict | None:
        return await handle.find_one(filter, **_translate_options(options, _FIND_OPTIONS))

    @_driver_errors
    async def aggregate(self, handle: Any, stages: list[dict]) -> list[dict]:
        cursor = handle.aggregate(stages)
        return await cursor.to_list(length=None)

    @_driver_errors
    async def count(self, handle: Any, filter: dict) -> int:
        return await handle.count_documents(filter)

    @_driver_errors
    async def distinct(self, handle: Any, field: str, filter: dict) -> list[Any]:
        return await handle.distinct(field, filter)

    @_driver_errors
    async def insert_one(self, handle: Any, document: dict, options: dict) -> None:
        await handle.insert_one(document, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def insert_many(self, handle: Any, documents: list[dict], options: dict) -> None:
        await handle.insert_many(documents, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def update_one(self, handle: Any, filter: dict, update: Any, options: dict) -> None:
        await handle.update_one(filter, update, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def update_many(self, handle: Any, filter: dict, update: Any, options: dict) -> None:
        await handle.update_many(filter, update, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def replace_one(
        self, handle: Any, filter: dict, replacement: dict, options: dict
    ) -> None:
        await handle.replace_one(
            filter, replacement, **_translate_options(options, _WRITE_OPTIONS)
        )

    @_driver_errors
    async def delete_one(self, handle: Any, filter: dict, options: dict) -> None:
        await handle.delete_one(filter, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def delete_many(self, handle: Any, filter: dict, options: dict) -> None:
        await handle.delete_many(filter, **_translate_options(options, _WRITE_OPTIONS))

    @_driver_errors
    async def run_command(self, document: dict) -> dict:
        return await self._db.command(document)
