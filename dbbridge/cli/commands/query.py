"""CLI — Offline query translation commands.

``translate`` runs the MongoDB text translator without a database and prints
the canonical command it would dispatch.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from dbbridge.exceptions import TranslationError

app = typer.Typer(help="Inspect how query text is translated.")
console = Console()


def _coerce_param(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@app.command("translate")
def translate(
    text: Annotated[str, typer.Argument(help="Shell-style or JSON MongoDB query text.")],
    param: Annotated[
        list[str] | None,
        typer.Option("--param", "-p", help="Positional parameter (JSON, or a plain string)."),
    ] = None,
    write: bool = typer.Option(False, "--write", help="Translate as a write (execute-update)."),
) -> None:
    """Print the canonical command for a MongoDB query text."""
    from dbbridge.docstore import to_command

    params = [_coerce_param(p) for p in (param or [])]
    try:
        command = to_command(text, params, write=write)
    except TranslationError as exc:
        console.print(f"[red]{exc.kind}: {escape(exc.message)}[/red]")
        raise typer.Exit(1)

    rendered = json.dumps(command.to_dict(), indent=2, default=str)
    console.print(Syntax(rendered, "json"))


@app.command("backends")
def backends() -> None:
    """List registered database backends."""
    from dbbridge.backends import BackendRegistry

    for name in BackendRegistry.list_backends():
        console.print(f"  [cyan]{name}[/cyan]")
