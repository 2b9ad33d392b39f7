"""CLI — Server management commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="Start and inspect the dbbridge server.")
console = Console()


@app.command("start")
def start(
    host: Annotated[str | None, typer.Option(help="Host to bind to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload (dev only)."),
    log_level: str = typer.Option("info", help="Log level."),
) -> None:
    """Start the dbbridge HTTP server."""
    from dbbridge.api.server import create_app
    from dbbridge.config import Settings

    settings = Settings.load(config_file=config)
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port

    console.print(
        f"[bold green]Starting dbbridge on {settings.server.host}:{settings.server.port}[/bold green]"
    )

    app_instance = create_app(settings=settings)

    uvicorn.run(
        app_instance,
        host=settings.server.host,
        port=settings.server.port,
        log_level=log_level,
        reload=reload,
    )


@app.command("status")
def status(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(40100),
) -> None:
    """Check server status."""
    import httpx

    try:
        resp = httpx.get(f"http://{host}:{port}/health", timeout=5.0)
        data = resp.json()
    except httpx.HTTPError as exc:
        console.print(f"[red]Server unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="dbbridge Status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in data.items():
        table.add_row(str(k), str(v))
    console.print(table)
