"""Docstore — Translation facade.

``translate_read`` and ``translate_write`` are the public entry points.  Both
follow the same pipeline:

    raw text ─► shell parser ─┬─► canonical command ─► dispatcher ─► store
                              │
                (not shell) ─►└─► structured parse ─► normalizer

Shell syntax is always tried first.  Text that is neither shell syntax nor a
structured literal fails with ``MalformedInputError`` before any store call.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dbbridge.docstore.commands import CanonicalCommand, Invocation, RawCommand
from dbbridge.docstore.dispatcher import dispatch_read, dispatch_write
from dbbridge.docstore.literals import parse_literal
from dbbridge.docstore.normalizer import normalize
from dbbridge.docstore.shell import ShellInvocation, parse_shell
from dbbridge.docstore.store import DocumentStore
from dbbridge.exceptions import (
    AmbiguousShapeError,
    MalformedInputError,
    MissingRequiredArgumentError,
)
from dbbridge.logging import get_logger

log = get_logger(__name__)


def to_command(
    text: str,
    params: Sequence[Any] = (),
    *,
    write: bool = False,
) -> CanonicalCommand:
    """Translate *text* into a canonical command without touching a store."""
    if not isinstance(text, str) or not text.strip():
        raise MalformedInputError(str(text or ""), "empty query")

    invocation = parse_shell(text)
    if invocation is not None:
        return _from_shell(invocation, text)

    try:
        value = parse_literal(text.strip())
    except ValueError as exc:
        raise MalformedInputError(text, str(exc)) from exc
    return normalize(value, params, write=write, raw_text=text)


async def translate_read(
    store: DocumentStore,
    text: str,
    params: Sequence[Any] = (),
) -> Any:
    """Run a read request and return the store's raw result.

    The result is a list of documents, a single document or None, a count,
    or a command reply, depending on the primitive that served it.
    """
    command = to_command(text, params)
    log.debug("docstore_translated", path="read", command=type(command).__name__)
    return await dispatch_read(store, command)


async def translate_write(
    store: DocumentStore,
    text: str,
    params: Sequence[Any] = (),
) -> None:
    """Run a write request.  Nothing is returned on success."""
    command = to_command(text, params, write=True)
    log.debug("docstore_translated", path="write", command=type(command).__name__)
    await dispatch_write(store, command)


def _from_shell(invocation: ShellInvocation, text: str) -> CanonicalCommand:
    if invocation.collection_name is not None:
        return Invocation(
            invocation.collection_name, invocation.method, list(invocation.primary_args)
        )

    # Database-level call: db.runCommand(doc)
    if not invocation.primary_args:
        raise MissingRequiredArgumentError(invocation.method, "command")
    document = invocation.primary_args[0]
    if isinstance(document, str) and document:
        return RawCommand({document: 1})
    if isinstance(document, dict) and document:
        return RawCommand(document)
    raise AmbiguousShapeError(text, "runCommand expects a command document")
