#!/usr/bin/env python3
"""
mongoscope CLI - Typer-based command-line interface.

Provides commands for:
- Serving the HTTP API
- Browsing a collection page by page
- Exporting a collection
- Connection status
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config.settings import configure_logging, get_settings
from ..errors import InvalidSort, MongoscopeError
from ..query import CollectionQueryParams
from ..service import CollectionService
from ..shaping import ExportFormat, RedactedField, serialize_value
from ..store import create_client

# Initialize Typer app
app = typer.Typer(
    name="mongoscope",
    help="mongoscope - browse, filter and export MongoDB collections",
    add_completion=False,
)

# Rich console
console = Console()

CELL_WIDTH = 40


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        from .. import __version__

        console.print(f"mongoscope version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    ),
):
    """
    mongoscope CLI - MongoDB collection browser.

    Use 'mongoscope COMMAND --help' for command-specific help.
    """
    configure_logging(log_level.upper() if log_level else None)


def parse_sort_options(entries: list[str]) -> dict[str, str]:
    """Turn ``field:dir`` options into ordered sort entries."""
    sort: dict[str, str] = {}
    for entry in entries:
        field_path, sep, direction = entry.rpartition(":")
        if not sep or not field_path:
            raise InvalidSort(f'Sort option "{entry}" must look like field:1 or field:-1')
        sort[field_path] = direction
    return sort


def format_cell(value: object) -> str:
    if isinstance(value, RedactedField):
        return f"{value.display} ({value.human_size})"
    text = value if isinstance(value, str) else serialize_value(value)
    if len(text) > CELL_WIDTH:
        return text[: CELL_WIDTH - 3] + "..."
    return text


def _params(
    key: str,
    value: str,
    value_type: str,
    query: str,
    projection: str,
    sort: list[str],
    skip: int,
    aggregate: bool,
) -> CollectionQueryParams:
    return CollectionQueryParams(
        key=key,
        value=value,
        type=value_type,
        query=query,
        projection=projection,
        sort=parse_sort_options(sort),
        skip=skip,
        run_aggregate=aggregate,
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8081, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """
    Serve the HTTP API with uvicorn.
    """
    import uvicorn

    uvicorn.run("mongoscope.api.main:app", host=host, port=port, reload=reload)


@app.command()
def browse(
    database: str = typer.Argument(..., help="Database name"),
    collection: str = typer.Argument(..., help="Collection name"),
    key: str = typer.Option("", "--key", "-k", help="Field for a simple filter"),
    value: str = typer.Option("", "--value", help="Value for a simple filter"),
    value_type: str = typer.Option("S", "--type", "-t", help="Value type: J, N, O, R, U, S"),
    query: str = typer.Option("", "--query", "-q", help="Shell-style query or pipeline"),
    projection: str = typer.Option("", "--projection", "-p", help="Shell-style projection"),
    sort: list[str] = typer.Option([], "--sort", "-s", help="field:1 or field:-1, repeatable"),
    skip: int = typer.Option(0, "--skip", help="Offset of the first document"),
    aggregate: bool = typer.Option(False, "--aggregate", "-a", help="Run a list query as a pipeline"),
):
    """
    Show one page of a collection.
    """

    async def _browse():
        settings = get_settings()
        client = create_client(settings)
        try:
            service = CollectionService.for_collection(client, database, collection, settings)
            params = _params(key, value, value_type, query, projection, sort, skip, aggregate)
            with console.status("[bold green]Querying...[/bold green]"):
                view = await service.view(params)
        finally:
            await client.close()

        table = Table(title=view.title, show_header=True)
        for column in view.columns:
            table.add_column(column, style="cyan" if column == view.default_key else None)
        for item in view.items:
            table.add_row(*(format_cell(item[c]) if c in item else "" for c in view.columns))
        console.print(table)

        page = view.pagination
        last_page = page.last // view.limit + 1
        console.print(
            f"[dim]{view.count} document(s) - page {page.here} of {last_page}"
            + (f" - next: --skip {page.next.skip}" if page.has_multiple_pages and page.next.skip <= page.last else "")
            + "[/dim]"
        )

    _run(_browse())


@app.command()
def export(
    database: str = typer.Argument(..., help="Database name"),
    collection: str = typer.Argument(..., help="Collection name"),
    fmt: ExportFormat = typer.Option(ExportFormat.JSONL, "--format", "-f", help="jsonl, json or csv"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file (default: stdout)"),
    key: str = typer.Option("", "--key", "-k", help="Field for a simple filter"),
    value: str = typer.Option("", "--value", help="Value for a simple filter"),
    value_type: str = typer.Option("S", "--type", "-t", help="Value type: J, N, O, R, U, S"),
    query: str = typer.Option("", "--query", "-q", help="Shell-style query"),
    sort: list[str] = typer.Option([], "--sort", "-s", help="field:1 or field:-1, repeatable"),
):
    """
    Export every matching document.
    """

    async def _export():
        settings = get_settings()
        client = create_client(settings)
        try:
            service = CollectionService.for_collection(client, database, collection, settings)
            params = _params(key, value, value_type, query, "", sort, 0, False)
            chunks = await service.export(params, fmt)
            if output is None:
                async for chunk in chunks:
                    sys.stdout.write(chunk)
                return
            with output.open("w", encoding="utf-8") as handle:
                async for chunk in chunks:
                    handle.write(chunk)
        finally:
            await client.close()
        console.print(f"[green]✓ Exported {database}.{collection} to {output}[/green]")

    _run(_export())


@app.command()
def status(
    database: str | None = typer.Argument(None, help="Database to list (default: MONGODB_DATABASE)"),
):
    """
    Show connection status and configuration.
    """

    async def _status():
        settings = get_settings()
        db_name = database or settings.mongodb_database
        client = create_client(settings)
        try:
            with console.status("[bold green]Connecting...[/bold green]"):
                await client.admin.command("ping")
                names = await client[db_name].list_collection_names()
        finally:
            await client.close()

        table = Table(title="mongoscope Status", show_header=True)
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")
        table.add_row("Database", db_name)
        table.add_row("Collections", ", ".join(sorted(names)) or "-")
        table.add_row("Documents per page", str(settings.documents_per_page))
        table.add_row("Max field size", str(settings.max_prop_size))
        table.add_row("Max document size", str(settings.max_row_size))
        table.add_row("Read only", str(settings.read_only))
        table.add_row("No delete", str(settings.no_delete))
        table.add_row("No export", str(settings.no_export))
        console.print(table)

    _run(_status())


def _run(coro) -> None:
    """Run a command coroutine, reporting mongoscope errors without a traceback."""
    try:
        asyncio.run(coro)
    except MongoscopeError as e:
        console.print(Panel(f"[red]{e.message}[/red]", title=e.code, style="red"))
        raise typer.Exit(1)


def run():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    run()
