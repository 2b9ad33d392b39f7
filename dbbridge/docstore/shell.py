"""Docstore — Shell-invocation parser.

Recognizes the interactive-shell call forms::

    db.getCollection('orders').find({status: 'A'}).sort({ts: -1}).limit(5)
    db.orders.aggregate([{$match: {}}])
    db.runCommand({ping: 1})

Only a literal method chain is understood.  The primary call's closing
parenthesis is found with a quote- and depth-aware scan, so chained
modifiers are split off before the primary arguments are tokenized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from dbbridge.docstore.literals import find_closing, parse_arguments, parse_literal

_GET_COLLECTION = re.compile(r"""^db\.getCollection\(\s*(['"])([^'"]+)\1\s*\)\.(\w+)\(""")
_DIRECT = re.compile(r"^db\.([A-Za-z_$][\w$]*)\.(\w+)\(")
_DATABASE_LEVEL = re.compile(r"^db\.(runCommand)\(")
_MODIFIER = re.compile(r"^\s*\.\s*(\w+)\s*\(")

CURSOR_MODIFIERS = frozenset({"sort", "limit", "skip", "project", "count"})

# Keys that mark a second find/findOne argument as an options document
# rather than a bare projection.
_OPTION_KEYS = frozenset(
    {
        "projection",
        "sort",
        "limit",
        "skip",
        "hint",
        "collation",
        "maxTimeMS",
        "batchSize",
        "allowDiskUse",
        "comment",
    }
)


@dataclass(frozen=True)
class ShellInvocation:
    """A parsed ``db.…`` call.  ``collection_name`` is None for database-level calls."""

    collection_name: str | None
    method: str
    primary_args: list[Any] = field(default_factory=list)
    cursor_modifiers: list[tuple[str, str]] = field(default_factory=list)


def parse_shell(text: str) -> ShellInvocation | None:
    """Return the invocation described by *text*, or None if it is not shell syntax."""
    stripped = text.strip().rstrip(";").rstrip()

    collection: str | None
    if m := _GET_COLLECTION.match(stripped):
        collection, method = m.group(2), m.group(3)
    elif m := _DIRECT.match(stripped):
        collection, method = m.group(1), m.group(2)
    elif m := _DATABASE_LEVEL.match(stripped):
        collection, method = None, m.group(1)
    else:
        return None

    open_index = m.end() - 1
    close_index = find_closing(stripped, open_index)
    if close_index < 0:
        return None

    args = parse_arguments(stripped[open_index + 1 : close_index])
    modifiers = _scan_modifiers(stripped[close_index + 1 :])

    if method == "find":
        args = _fold_find(args, modifiers)
    elif method == "findOne" and len(args) > 1:
        args = [args[0], _as_options(args[1]), *args[2:]]

    return ShellInvocation(
        collection_name=collection,
        method=method,
        primary_args=args,
        cursor_modifiers=modifiers,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scan_modifiers(rest: str) -> list[tuple[str, str]]:
    """Collect ``.name(args)`` calls chained after the primary call.

    Scanning stops at the first piece of text that is not a chained call.
    """
    modifiers: list[tuple[str, str]] = []
    while True:
        m = _MODIFIER.match(rest)
        if m is None:
            break
        open_index = m.end() - 1
        close_index = find_closing(rest, open_index)
        if close_index < 0:
            break
        modifiers.append((m.group(1), rest[open_index + 1 : close_index].strip()))
        rest = rest[close_index + 1 :]
    return modifiers


def _fold_find(args: list[Any], modifiers: list[tuple[str, str]]) -> list[Any]:
    """Merge cursor modifiers into ``[filter, options]``.  ``count`` adds nothing."""
    filter_doc = args[0] if args else {}
    options = _as_options(args[1]) if len(args) > 1 else {}

    for name, raw in modifiers:
        if name == "sort":
            value = _parse_document(raw)
            if value is not None:
                options["sort"] = value
        elif name in ("limit", "skip"):
            number = _parse_int(raw)
            if number is not None:
                options[name] = number
        elif name == "project":
            value = _parse_document(raw)
            if value is not None:
                options["projection"] = value
    return [filter_doc, options]


def _as_options(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict) or not value:
        return {}
    if _OPTION_KEYS.intersection(value):
        return dict(value)
    return {"projection": value}


def _parse_document(raw: str) -> dict[str, Any] | None:
    for candidate in (raw, "{" + raw + "}"):
        try:
            value = parse_literal(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(raw: str) -> int | None:
    m = _LEADING_INT.match(raw)
    return int(m.group(1)) if m else None
