"""
Root Typer application for the funcweb CLI.
"""

from __future__ import annotations

import json

import typer
from rich.table import Table

from funcweb.cli.utils import console, err_console, load_registry
from funcweb.core.errors import FuncWebError
from funcweb.core.settings import FunctionWebSettings

app = typer.Typer(
    name="funcweb",
    help="funcweb: serve registered functions over HTTP.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from funcweb import __version__

        typer.echo(f"funcweb {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """funcweb CLI: list and serve unit routes."""


@app.command("routes")
def routes(
    target: str = typer.Argument(..., help="module or module:registry holding the units"),
    path: str | None = typer.Option(None, "--path", help="Route prefix (functions.web.path)"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table"),
) -> None:
    """List the routes the units in TARGET would be published under."""
    from funcweb.api.mapping import FunctionHandlerMapping
    from funcweb.core.logging import configure_logging

    settings = FunctionWebSettings() if path is None else FunctionWebSettings(path=path)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    registry = load_registry(target)
    mapping = FunctionHandlerMapping(registry, settings.path)
    try:
        summaries = mapping.summaries()
    except FuncWebError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e

    for error in mapping.diagnostics:
        err_console.print(f"[yellow]skipped[/yellow] {error.context.unit}: {error.message}")

    if as_json:
        typer.echo(json.dumps([s.model_dump() for s in summaries], indent=2))
        return

    table = Table(title=f"Unit routes ({len(summaries)})")
    for column in ("Method", "Path", "Unit", "Shape", "Input", "Output"):
        table.add_column(column)
    for s in summaries:
        table.add_row(s.method, s.path, s.unit, s.shape, s.input_type or "-", s.output_type or "-")
    console.print(table)


@app.command("serve")
def serve(
    target: str = typer.Argument(..., help="module or module:registry holding the units"),
    path: str | None = typer.Option(None, "--path", help="Route prefix (functions.web.path)"),
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    log_level: str | None = typer.Option(None, "--log-level"),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs"),
) -> None:
    """Start an HTTP server for the units in TARGET."""
    import uvicorn

    from funcweb.api.app import create_app
    from funcweb.core.logging import configure_logging

    overrides = {
        key: value
        for key, value in {
            "path": path,
            "host": host,
            "port": port,
            "log_level": log_level,
            "json_logs": json_logs,
        }.items()
        if value is not None
    }
    settings = FunctionWebSettings(**overrides)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    registry = load_registry(target)
    try:
        application = create_app(settings, registry=registry)
    except FuncWebError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]Starting funcweb[/bold green] on {settings.host}:{settings.port}"
        f" ({len(registry)} units, prefix '{settings.path or '/'}')"
    )
    uvicorn.run(
        application,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
