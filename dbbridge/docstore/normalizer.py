"""Docstore — Query-object normalizer.

Rewrites a parsed structured value into one canonical command.  Rules are
tried in order and the first match wins:

1. array                                  → Pipeline (collection from the first
                                            positional parameter, else from a
                                            leading ``{"collection": …}`` element)
2. ``{runCommand: doc}``                  → RawCommand(doc)
3. ``{collection, pipeline: [...]}``      → Pipeline
4. ``{collection, method, args?}``        → Invocation
5. ``{collection, operation: {...}}``     → named write shape (write path only)
6. stage shorthand                        → Pipeline
6b. ``{collection, insertOne: …}``       → Invocation (write path only)
7. ``{collection, ...filter}``            → Invocation(find, [filter])
7b. named write shape + positional name   → Invocation (write path only)
8. anything else                          → RawCommand

Stage bodies are never inspected.  A mapping such as ``{collection: "c",
count: 1}`` is read as a ``$count`` stage, not as a filter on a field named
``count``; callers who mean a filter should use the explicit ``find`` forms.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from dbbridge.docstore.commands import (
    BARE_STAGE_NAMES,
    STAGE_OPERATORS,
    CanonicalCommand,
    Invocation,
    Pipeline,
    RawCommand,
)
from dbbridge.exceptions import AmbiguousShapeError, MissingCollectionError

# Write shapes accepted as ``{<name>: body}``, checked in this order.
WRITE_SHAPES: tuple[str, ...] = (
    "insertOne",
    "insertMany",
    "updateOne",
    "updateMany",
    "deleteOne",
    "deleteMany",
    "replaceOne",
)

_RESERVED_KEYS = frozenset({"pipeline", "operation", "method"})


def normalize(
    value: Any,
    params: Sequence[Any] = (),
    *,
    write: bool = False,
    raw_text: str | None = None,
) -> CanonicalCommand:
    """Return the canonical command described by *value*.

    Raises:
        AmbiguousShapeError:    *value* is a scalar, an empty mapping, or
                                contains a multi-key pipeline stage.
        MissingCollectionError: A pipeline form names no collection.
    """
    text = raw_text if raw_text is not None else _render(value)
    positional = _positional_collection(params)

    # 1. pipeline array
    if isinstance(value, list):
        stages = list(value)
        collection = positional
        if stages and isinstance(stages[0], dict) and "collection" in stages[0]:
            leading = dict(stages.pop(0))
            named = leading.pop("collection")
            if collection is None:
                collection = _require_name(named)
            if leading:
                stages.insert(0, leading)
        if collection is None:
            raise MissingCollectionError()
        return Pipeline(collection, _checked_stages(stages, text))

    if not isinstance(value, dict):
        raise AmbiguousShapeError(text, f"expected an object or array, got {type(value).__name__}")
    if not value:
        raise AmbiguousShapeError(text, "empty object")

    # 2. database-level command wrapper
    if "runCommand" in value:
        return RawCommand(_command_document(value["runCommand"], text))

    has_collection = "collection" in value
    collection = _require_name(value["collection"]) if has_collection else None

    if collection is not None:
        # 3. explicit pipeline
        if isinstance(value.get("pipeline"), list):
            return Pipeline(collection, _checked_stages(value["pipeline"], text))

        # 4. explicit method invocation
        if "method" in value:
            args = value.get("args")
            if args is None:
                args = []
            elif not isinstance(args, list):
                args = [args]
            return Invocation(collection, str(value["method"]), list(args))

        # 5. operation wrapper (write path)
        if write and "operation" in value:
            return _operation_command(collection, value["operation"], text)

    # 6. stage shorthand
    shorthand = _stage_shorthand(value, collection, positional, text)
    if shorthand is not None:
        return shorthand

    # 6b. top-level write shape beside a collection key (write path)
    if write and collection is not None:
        invocation = named_write_shape(collection, value)
        if invocation is not None:
            return invocation

    # 7. flat filter
    if collection is not None and not _RESERVED_KEYS.intersection(value):
        filter_doc = {k: v for k, v in value.items() if k != "collection"}
        return Invocation(collection, "find", [filter_doc])

    # 7b. top-level write shape against a positional collection
    if write and not has_collection and positional is not None:
        invocation = named_write_shape(positional, value)
        if invocation is not None:
            return invocation
        return RawCommand({**value, "collection": positional})

    # 8. raw command
    return RawCommand(value)


def named_write_shape(collection: str, document: dict[str, Any]) -> Invocation | None:
    """Read ``{insertOne: doc}``-style shapes; None when none is present."""
    for name in WRITE_SHAPES:
        if name not in document:
            continue
        body = document[name]
        if name in ("updateOne", "updateMany"):
            body = body if isinstance(body, dict) else {}
            args = [body.get("filter"), body.get("update")]
        elif name == "replaceOne":
            body = body if isinstance(body, dict) else {}
            args = [body.get("filter"), body.get("replacement")]
        else:
            return Invocation(collection, name, [body])
        if body.get("options") is not None:
            args.append(body["options"])
        return Invocation(collection, name, args)
    return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


def _positional_collection(params: Sequence[Any]) -> str | None:
    if params and isinstance(params[0], str) and params[0]:
        return params[0]
    return None


def _require_name(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise MissingCollectionError(
            "Collection name must be a non-empty string", collection=None
        )
    return value


def _checked_stages(stages: list[Any], text: str) -> list[dict[str, Any]]:
    for stage in stages:
        if not isinstance(stage, dict) or len(stage) != 1:
            raise AmbiguousShapeError(
                text, "each pipeline stage must be an object with exactly one key"
            )
    return list(stages)


def _command_document(value: Any, text: str) -> dict[str, Any]:
    if isinstance(value, dict) and value:
        return value
    if isinstance(value, str) and value:
        return {value: 1}
    raise AmbiguousShapeError(text, "runCommand expects a command document")


def _operation_command(collection: str, operation: Any, text: str) -> CanonicalCommand:
    if not isinstance(operation, dict) or not operation:
        raise AmbiguousShapeError(text, "operation must be a non-empty object")
    invocation = named_write_shape(collection, operation)
    if invocation is not None:
        return invocation
    if "runCommand" in operation:
        return RawCommand(_command_document(operation["runCommand"], text))
    return RawCommand(operation)


def _stage_shorthand(
    value: dict[str, Any],
    collection: str | None,
    positional: str | None,
    text: str,
) -> Pipeline | None:
    if collection is not None:
        bare = [k for k in value if k in BARE_STAGE_NAMES]
        if bare and not _RESERVED_KEYS.intersection(value):
            return Pipeline(collection, [{"$" + k: value[k]} for k in bare])

    prefixed = [k for k in value if k in STAGE_OPERATORS]
    if not prefixed:
        return None
    target = collection or positional
    if target is None:
        raise MissingCollectionError()
    return Pipeline(target, _checked_stages([{k: value[k]} for k in prefixed], text))
