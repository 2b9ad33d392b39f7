"""dbbridge CLI — Entry point.

Usage:
    dbbridge server start
    dbbridge server status
    dbbridge query translate <text> [--param VALUE ...] [--write]
    dbbridge query backends
"""

from __future__ import annotations

import typer

from dbbridge.cli.commands import query, server

app = typer.Typer(
    name="dbbridge",
    help="dbbridge — Database tool server with MongoDB query translation.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(server.app, name="server")
app.add_typer(query.app, name="query")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
