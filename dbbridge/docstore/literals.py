"""Docstore — Literal tokenizer.

Splits a shell-style argument list (``{a: 1}, 'name', [1, 2]``) into its
top-level arguments and coerces each one into a plain Python value.

Coercion is layered and never raises:

1. strict JSON;
2. relaxed shell literal: bare identifier keys are quoted, single-quoted
   strings become double-quoted, trailing commas are dropped;
3. ``ObjectId("...")`` constructor calls are rewritten to their hex string;
4. otherwise the trimmed argument text itself is kept as a string.

Usage::

    from dbbridge.docstore.literals import parse_arguments

    parse_arguments("{age: {$gt: 21}}, {name: 1}")
    # → [{"age": {"$gt": 21}}, {"name": 1}]
"""

from __future__ import annotations

import json
import re
from typing import Any

_OBJECT_ID_CALL = re.compile(r"""(?:new\s+)?ObjectId\(\s*(['"])([^'"]*)\1\s*\)""")

_IDENT_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$"
)

_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


def split_arguments(text: str) -> list[str]:
    """Split *text* on commas that sit at depth zero and outside quotes.

    Braces, brackets and parentheses each count towards depth; single and
    double quotes are honoured with backslash escapes.  An empty or
    whitespace-only *text* yields ``[]``; a trailing empty segment is dropped.
    """
    if not text or not text.strip():
        return []

    parts: list[str] = []
    buf: list[str] = []
    depth = {"{": 0, "[": 0, "(": 0}
    quote: str | None = None
    escaped = False

    for ch in text:
        if quote is not None:
            buf.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue

        if ch in ("'", '"'):
            quote = ch
        elif ch in _OPENERS:
            depth[ch] += 1
        elif ch in _CLOSERS:
            depth[_CLOSERS[ch]] -= 1
        elif ch == "," and not any(depth.values()):
            parts.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        parts.append(tail)
    return parts


def find_closing(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at *open_index*.

    Quotes are skipped the same way :func:`split_arguments` skips them.
    Returns ``-1`` when the bracket is never closed.
    """
    opener = text[open_index]
    closer = _OPENERS[opener]
    level = 0
    quote: str | None = None
    escaped = False

    for i in range(open_index, len(text)):
        ch = text[i]
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == opener:
            level += 1
        elif ch == closer:
            level -= 1
            if level == 0:
                return i
    return -1


# ---------------------------------------------------------------------------
# Relaxed shell literal → JSON
# ---------------------------------------------------------------------------


def _last_significant(out: list[str]) -> str:
    for chunk in reversed(out):
        stripped = chunk.rstrip()
        if stripped:
            return stripped[-1]
    return ""


def _drop_trailing_comma(out: list[str]) -> None:
    for i in range(len(out) - 1, -1, -1):
        stripped = out[i].rstrip()
        if not stripped:
            continue
        if stripped.endswith(","):
            out[i] = stripped[:-1]
        return


def shell_to_json(text: str) -> str:
    """Rewrite a shell object/array literal into strict JSON text.

    Only the lexical differences are handled: unquoted keys (including
    ``$operators``), single-quoted strings and trailing commas.  The result
    may still be invalid JSON; callers decide what to do with that.
    """
    out: list[str] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch == '"':
            end = i + 1
            while end < n and text[end] != '"':
                end += 2 if text[end] == "\\" else 1
            out.append(text[i : end + 1])
            i = end + 1
            continue

        if ch == "'":
            chars: list[str] = []
            i += 1
            while i < n and text[i] != "'":
                if text[i] == "\\" and i + 1 < n:
                    nxt = text[i + 1]
                    chars.append(nxt if nxt == "'" else "\\" + nxt)
                    i += 2
                    continue
                chars.append('\\"' if text[i] == '"' else text[i])
                i += 1
            out.append('"' + "".join(chars) + '"')
            i += 1
            continue

        if ch in _IDENT_CHARS:
            start = i
            while i < n and text[i] in _IDENT_CHARS:
                i += 1
            word = text[start:i]
            look = i
            while look < n and text[look].isspace():
                look += 1
            is_key = look < n and text[look] == ":" and _last_significant(out) in ("{", ",")
            out.append(f'"{word}"' if is_key else word)
            continue

        if ch in ("}", "]"):
            _drop_trailing_comma(out)

        out.append(ch)
        i += 1

    return "".join(out)


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def parse_literal(text: str) -> Any:
    """Parse *text* as strict JSON, then as a relaxed shell literal.

    Raises:
        ValueError: If neither form parses.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(shell_to_json(text))
    except json.JSONDecodeError as exc:
        raise ValueError(f"not a literal: {exc.msg}") from exc


def coerce_literal(text: str) -> Any:
    """Best-effort conversion of one argument; falls back to the raw text."""
    stripped = text.strip()
    try:
        return parse_literal(stripped)
    except ValueError:
        pass

    if "ObjectId(" in stripped:
        rewritten = _OBJECT_ID_CALL.sub(lambda m: json.dumps(m.group(2)), stripped)
        try:
            return parse_literal(rewritten)
        except ValueError:
            pass

    return stripped


def parse_arguments(text: str) -> list[Any]:
    """Split and coerce a whole argument list."""
    return [coerce_literal(part) for part in split_arguments(text)]
