"""Docstore — Canonical command model.

Every accepted request, whatever its surface syntax, is reduced to exactly one
of three variants before it reaches a store:

``Pipeline``
    An ordered list of single-key aggregation stages against a collection.
``Invocation``
    A named collection method with positional arguments.
``RawCommand``
    A database-level command document submitted verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

#: Stage operator names recognized when detecting pipeline shorthand.
STAGE_OPERATORS: frozenset[str] = frozenset(
    {
        "$match",
        "$sort",
        "$limit",
        "$skip",
        "$project",
        "$group",
        "$unwind",
        "$lookup",
        "$count",
        "$facet",
        "$addFields",
        "$replaceRoot",
        "$sample",
    }
)

#: Same names without the ``$`` prefix, as accepted next to ``collection``.
BARE_STAGE_NAMES: frozenset[str] = frozenset(op[1:] for op in STAGE_OPERATORS)


@dataclass(frozen=True)
class Pipeline:
    collection: str
    stages: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        for stage in self.stages:
            if not isinstance(stage, dict) or len(stage) != 1:
                raise ValueError(f"pipeline stage must have exactly one key: {stage!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"type": "pipeline", "collection": self.collection, "stages": self.stages}


@dataclass(frozen=True)
class Invocation:
    collection: str
    method: str
    args: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "invocation",
            "collection": self.collection,
            "method": self.method,
            "args": self.args,
        }


@dataclass(frozen=True)
class RawCommand:
    document: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": "raw_command", "document": self.document}


CanonicalCommand = Union[Pipeline, Invocation, RawCommand]
