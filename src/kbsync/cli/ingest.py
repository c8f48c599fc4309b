"""kbsync ingest — (re)index a client's source files into the vector store.

Every named file is reset first (its old rows deleted), so running ingest
twice on an unchanged file leaves the same rows, not duplicates.

Usage:
  kbsync ingest --client acme --file handbook.pdf --file faq.md
  kbsync ingest --client acme --all
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import SpinnerColumn, Progress, TextColumn
from rich.table import Table

from kbsync.cli.common import open_cli_runtime
from kbsync.cli.errors import (
    err_invalid_input,
    err_no_api_key,
    err_no_files,
    err_storage,
    err_total_failure,
    warn_partial,
    warn_stale_rows,
)
from kbsync.exceptions import ConfigurationError, StorageError, ValidationError
from kbsync.ingest.orchestrator import IngestResult

console = Console()


def ingest_cmd(
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    file: Annotated[
        list[str] | None,
        typer.Option("--file", "-f", help="File name in the client's storage (repeatable)."),
    ] = None,
    all_files: Annotated[
        bool,
        typer.Option("--all", help="Ingest every file currently stored for the client."),
    ] = False,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Files processed concurrently (default from config)."),
    ] = None,
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Ingest source files for a client into the knowledge base."""
    runtime = open_cli_runtime(console, db, root)
    if workers is not None:
        runtime.config.ingest.max_workers = workers

    try:
        names = list(file or [])
        if all_files:
            try:
                names.extend(f.name for f in runtime.objects.list(client) if f.name not in names)
            except StorageError as exc:
                console.print(err_storage(str(exc)))
                raise typer.Exit(1)
            except ValidationError as exc:
                console.print(err_invalid_input(str(exc)))
                raise typer.Exit(1)
        if not names:
            console.print(err_no_files(client))
            raise typer.Exit(1)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Ingesting {len(names)} file(s) for {client}…", total=None)
            try:
                result = runtime.orchestrator().ingest(client, names)
            except ValidationError as exc:
                console.print(err_invalid_input(str(exc)))
                raise typer.Exit(1)
            except ConfigurationError as exc:
                console.print(err_no_api_key(str(exc)))
                raise typer.Exit(1)
    finally:
        runtime.close()

    _show_result(result)
    if not result.success:
        raise typer.Exit(1)


def _show_result(result: IngestResult) -> None:
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("", width=2)
    table.add_column("File")
    table.add_column("Chunks", justify="right")
    table.add_column("Batches", justify="right", style="dim")

    for report in result.files:
        ok = not report.errors
        mark = "[green]✓[/]" if ok else ("[yellow]~[/]" if report.chunks_written else "[red]✗[/]")
        failed = sum(1 for b in report.batches if not b.ok)
        batches = f"{len(report.batches) - failed}/{len(report.batches)}" if report.batches else "-"
        table.add_row(mark, report.file_name, f"{report.chunks_written}/{report.chunk_count}", batches)

    console.print(table)
    for report in result.files:
        if not report.reset_ok:
            console.print(warn_stale_rows(report.file_name))

    if not result.success:
        console.print(err_total_failure(result.errors))
    else:
        if result.errors:
            console.print(warn_partial(result.errors))
        console.print(f"[green]✓[/] {result.chunks_processed} chunks written")
