"""
CLI for the file store.

Commands:
    filestore put PATH --category C - Store a file
    filestore get ID - Write a stored file to disk or stdout
    filestore rm ID - Delete a stored file
    filestore ls - List stored files
    filestore info - Show storage statistics
    filestore cleanup - Run the eviction passes now
    filestore clear --yes - Delete everything
    filestore config - Show current configuration
    filestore version - Print version
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from filestore import __version__
from filestore.config import Settings, clear_settings_cache, get_settings
from filestore.exceptions import FileStoreError
from filestore.logging import setup_logging
from filestore.manager import FileManager
from filestore.types import FileCategory, SortKey, SortOrder
from filestore.utils.formatting import format_file_size, format_timestamp

app = typer.Typer(
    name="filestore",
    help="Persistent file store with retention-based eviction",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

T = TypeVar("T")


def _load_settings() -> Settings:
    """Load settings, exiting with a readable message if they are invalid."""
    try:
        clear_settings_cache()
        settings = get_settings()
    except Exception as e:
        error_console.print(f"[red]Error:[/red] Configuration is invalid: {e}")
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


def _run(action: Callable[[FileManager], Awaitable[T]]) -> T:
    """Open the store, run one action against it, close it."""
    settings = _load_settings()

    async def runner() -> T:
        async with FileManager.from_settings(settings) as manager:
            return await action(manager)

    try:
        return asyncio.run(runner())
    except FileStoreError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def put(
    path: Annotated[Path, typer.Argument(help="File to store", exists=True, dir_okay=False)],
    category: Annotated[
        str,
        typer.Option("--category", "-c", help="original|compressed|converted|ocr|ai-processed"),
    ] = FileCategory.ORIGINAL.value,
    name: Annotated[
        Optional[str], typer.Option("--name", "-n", help="Display name (defaults to file name)")
    ] = None,
    mime_type: Annotated[
        Optional[str], typer.Option("--mime-type", "-m", help="Content type")
    ] = None,
    details: Annotated[
        Optional[str], typer.Option("--details", "-d", help="Processing details as JSON")
    ] = None,
) -> None:
    """Store a file."""
    processing_details: Any = None
    if details:
        try:
            processing_details = json.loads(details)
        except json.JSONDecodeError as e:
            error_console.print(f"[red]Error:[/red] --details is not valid JSON: {e}")
            raise typer.Exit(1)

    content = path.read_bytes()
    record = _run(
        lambda m: m.store_file(
            content,
            category,
            name=name or path.name,
            mime_type=mime_type,
            processing_details=processing_details,
        )
    )
    console.print(f"[green]Stored[/green] {record.name} as [bold]{record.id}[/bold]")


@app.command()
def get(
    file_id: Annotated[str, typer.Argument(help="File ID")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write to this path instead of stdout"),
    ] = None,
) -> None:
    """Fetch a stored file."""
    stored = _run(lambda m: m.get_file(file_id))
    if output is None:
        sys.stdout.buffer.write(stored.content)
        sys.stdout.buffer.flush()
        return
    output.write_bytes(stored.content)
    console.print(
        f"Wrote {stored.record.name} ({format_file_size(stored.size)}) to {output}"
    )


@app.command()
def rm(file_id: Annotated[str, typer.Argument(help="File ID")]) -> None:
    """Delete a stored file."""
    existed = _run(lambda m: m.delete_file(file_id))
    if existed:
        console.print(f"[green]Deleted[/green] {file_id}")
    else:
        console.print(f"[yellow]No such file:[/yellow] {file_id}")


@app.command("ls")
def list_command(
    category: Annotated[
        Optional[str], typer.Option("--category", "-c", help="Only this category")
    ] = None,
    sort_by: Annotated[
        SortKey, typer.Option("--sort-by", "-s", help="Sort field")
    ] = SortKey.UPLOADED_AT,
    order: Annotated[SortOrder, typer.Option("--order", help="Sort direction")] = SortOrder.DESC,
    search: Annotated[
        Optional[str], typer.Option("--search", "-q", help="Name contains (case-insensitive)")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """List stored files."""
    records = _run(
        lambda m: m.list_files(category=category, sort_by=sort_by, sort_order=order, search=search)
    )

    if as_json:
        console.print_json(data={"files": [r.to_dict() for r in records]})
        return

    table = Table(title=f"Files ({len(records)})", show_header=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Category", style="magenta")
    table.add_column("Size", justify="right")
    table.add_column("Uploaded")
    table.add_column("Last accessed")

    for record in records:
        table.add_row(
            record.id,
            record.name,
            record.category.value,
            format_file_size(record.size),
            format_timestamp(record.uploaded_at),
            format_timestamp(record.last_accessed),
        )

    console.print(table)


@app.command()
def info(as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False) -> None:
    """Show storage statistics."""
    storage = _run(lambda m: m.get_storage_info())

    if as_json:
        console.print_json(data=storage.to_dict())
        return

    table = Table(title="Storage", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total files", str(storage.total_files))
    table.add_row("Total size", format_file_size(storage.total_size))
    for category, count in sorted(storage.files_by_category.items()):
        table.add_row(f"  {category}", str(count))
    if storage.oldest_file and storage.newest_file:
        table.add_row("Oldest upload", format_timestamp(storage.oldest_file))
        table.add_row("Newest upload", format_timestamp(storage.newest_file))
    console.print(table)


@app.command()
def cleanup() -> None:
    """Run the eviction passes now."""
    report = _run(lambda m: m.cleanup())
    if report.skipped:
        console.print("[yellow]Auto cleanup is disabled; nothing done.[/yellow]")
        return
    console.print(
        f"Removed {len(report.removed)} file(s): "
        f"{len(report.expired)} expired, {len(report.over_count)} over count, "
        f"{len(report.over_size)} over size, {len(report.missing_content)} missing content"
    )
    if report.orphaned:
        console.print(f"Removed {len(report.orphaned)} unreferenced blob file(s)")
    if report.failed:
        error_console.print(
            f"[yellow]{len(report.failed)} file(s) could not be removed; "
            "they will be retried next cleanup.[/yellow]"
        )


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Confirm deleting everything")] = False,
) -> None:
    """Delete every stored file."""
    if not yes:
        error_console.print("[red]Refusing to clear the store without --yes.[/red]")
        raise typer.Exit(1)
    count = _run(lambda m: m.clear_all())
    console.print(f"[green]Cleared[/green] {count} file(s)")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _load_settings()

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"filestore version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
