"""Docstore — Command dispatcher.

Executes one canonical command against a ``DocumentStore``.  Known methods
are looked up in two finite tables, ``READ_OPERATIONS`` and
``WRITE_OPERATIONS``; anything else goes through the generic-command arm,
which submits ``{<method>: <collection>, …}`` as a database command.

Every dispatch performs exactly one store call.  Argument checks happen
before that call, so a missing required argument never reaches the store.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from dbbridge.docstore.commands import CanonicalCommand, Invocation, Pipeline, RawCommand
from dbbridge.docstore.store import DocumentStore
from dbbridge.exceptions import (
    MissingRequiredArgumentError,
    StoreOperationError,
    UnsupportedMethodError,
)
from dbbridge.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Arg:
    """One positional slot of an operation."""

    name: str
    required: bool = False
    default: Callable[[], Any] | None = dict
    expected: type | tuple[type, ...] | None = None


@dataclass(frozen=True)
class OperationSpec:
    """Descriptor of a known collection method."""

    name: str
    args: tuple[Arg, ...]
    call: Callable[[DocumentStore, Any, list[Any]], Awaitable[Any]]

    def bind(self, supplied: list[Any]) -> list[Any]:
        """Fill defaults and enforce required slots.

        Raises:
            MissingRequiredArgumentError: A required slot is absent, null or
                                          of the wrong type.
        """
        bound: list[Any] = []
        for i, slot in enumerate(self.args):
            value = supplied[i] if i < len(supplied) else None
            if value is None:
                if slot.required:
                    raise MissingRequiredArgumentError(self.name, slot.name)
                value = slot.default() if slot.default is not None else None
            elif slot.expected is not None and not isinstance(value, slot.expected):
                raise MissingRequiredArgumentError(self.name, slot.name)
            bound.append(value)
        return bound


_FILTER = Arg("filter", expected=dict)
_OPTIONS = Arg("options", expected=dict)


READ_OPERATIONS: dict[str, OperationSpec] = {
    "find": OperationSpec(
        "find", (_FILTER, _OPTIONS), lambda s, h, a: s.find(h, a[0], a[1])
    ),
    "findOne": OperationSpec(
        "findOne", (_FILTER, _OPTIONS), lambda s, h, a: s.find_one(h, a[0], a[1])
    ),
    "aggregate": OperationSpec(
        "aggregate",
        (Arg("pipeline", default=list, expected=list),),
        lambda s, h, a: s.aggregate(h, a[0]),
    ),
    "count": OperationSpec("count", (_FILTER,), lambda s, h, a: s.count(h, a[0])),
    "countDocuments": OperationSpec(
        "countDocuments", (_FILTER,), lambda s, h, a: s.count(h, a[0])
    ),
    "distinct": OperationSpec(
        "distinct",
        (Arg("field", required=True, expected=str), _FILTER),
        lambda s, h, a: s.distinct(h, a[0], a[1]),
    ),
}

WRITE_OPERATIONS: dict[str, OperationSpec] = {
    "insertOne": OperationSpec(
        "insertOne",
        (Arg("document", required=True, expected=dict), _OPTIONS),
        lambda s, h, a: s.insert_one(h, a[0], a[1]),
    ),
    "insertMany": OperationSpec(
        "insertMany",
        (Arg("documents", required=True, expected=list), _OPTIONS),
        lambda s, h, a: s.insert_many(h, a[0], a[1]),
    ),
    "updateOne": OperationSpec(
        "updateOne",
        (Arg("filter", required=True, expected=dict), Arg("update", required=True), _OPTIONS),
        lambda s, h, a: s.update_one(h, a[0], a[1], a[2]),
    ),
    "updateMany": OperationSpec(
        "updateMany",
        (Arg("filter", required=True, expected=dict), Arg("update", required=True), _OPTIONS),
        lambda s, h, a: s.update_many(h, a[0], a[1], a[2]),
    ),
    "replaceOne": OperationSpec(
        "replaceOne",
        (
            Arg("filter", required=True, expected=dict),
            Arg("replacement", required=True, expected=dict),
            _OPTIONS,
        ),
        lambda s, h, a: s.replace_one(h, a[0], a[1], a[2]),
    ),
    "deleteOne": OperationSpec(
        "deleteOne",
        (Arg("filter", required=True, expected=dict), _OPTIONS),
        lambda s, h, a: s.delete_one(h, a[0], a[1]),
    ),
    "deleteMany": OperationSpec(
        "deleteMany",
        (Arg("filter", required=True, expected=dict), _OPTIONS),
        lambda s, h, a: s.delete_many(h, a[0], a[1]),
    ),
}

_FILTER_SHAPED = frozenset({"find", "findOne", "count", "countDocuments"})


def build_generic_command(collection: str, method: str, args: list[Any]) -> dict[str, Any]:
    """Build the database command used for methods without a primitive."""
    command: dict[str, Any] = {method: collection}
    if method in _FILTER_SHAPED:
        if args:
            command["filter"] = args[0]
        if method == "find" and len(args) > 1 and isinstance(args[1], dict):
            for key in ("projection", "limit", "skip", "sort"):
                if key in args[1]:
                    command[key] = args[1][key]
    elif method == "aggregate":
        command["pipeline"] = args[0] if args else []
    else:
        for i, arg in enumerate(args):
            command[f"arg{i}"] = arg
    return command


async def dispatch_read(store: DocumentStore, command: CanonicalCommand) -> Any:
    """Run a read command and return the store's result unmodified."""
    return await _dispatch(store, command, READ_OPERATIONS)


async def dispatch_write(store: DocumentStore, command: CanonicalCommand) -> None:
    """Run a write command.  Results, including pipeline output, are discarded."""
    await _dispatch(store, command, WRITE_OPERATIONS)


async def _dispatch(
    store: DocumentStore,
    command: CanonicalCommand,
    table: dict[str, OperationSpec],
) -> Any:
    if isinstance(command, RawCommand):
        log.debug("docstore_dispatch", kind="raw_command")
        return await store.run_command(command.document)

    if isinstance(command, Pipeline):
        log.debug("docstore_dispatch", kind="pipeline", collection=command.collection)
        handle = store.resolve_collection(command.collection)
        return await store.aggregate(handle, command.stages)

    assert isinstance(command, Invocation)
    operation = table.get(command.method)
    if operation is None:
        return await _dispatch_generic(store, command)

    bound = operation.bind(command.args)
    log.debug(
        "docstore_dispatch",
        kind="invocation",
        collection=command.collection,
        method=command.method,
    )
    handle = store.resolve_collection(command.collection)
    return await operation.call(store, handle, bound)


async def _dispatch_generic(store: DocumentStore, command: Invocation) -> Any:
    document = build_generic_command(command.collection, command.method, command.args)
    log.debug(
        "docstore_dispatch",
        kind="generic",
        collection=command.collection,
        method=command.method,
    )
    try:
        return await store.run_command(document)
    except StoreOperationError as exc:
        raise UnsupportedMethodError(command.method, cause=exc.message) from exc
