"""kbsync purge / kbsync reap — bulk knowledge-base cleanup.

purge: delete every vector row and every source file of a client.
reap:  delete vector rows whose source file no longer exists.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from kbsync.cli.common import open_cli_runtime
from kbsync.cli.errors import err_invalid_input, err_storage
from kbsync.exceptions import StorageError, ValidationError

console = Console()


def purge_cmd(
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Delete everything stored for a client (rows and source files)."""
    if not yes and not typer.confirm(
        f"Delete ALL knowledge-base data for client '{client}'?", default=False
    ):
        console.print("[dim]Cancelled.[/]")
        raise typer.Exit(0)

    runtime = open_cli_runtime(console, db, root)
    try:
        report = runtime.deletion().purge_client(client)
    except ValidationError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1)
    finally:
        runtime.close()

    console.print(
        f"[green]✓[/] Purged {client}: {report.rows_deleted} rows, {report.files_deleted} files"
    )
    if report.errors:
        for err in report.errors:
            console.print(f"  [red]✗[/] {err}")
        raise typer.Exit(1)


def reap_cmd(
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Delete vector rows whose source file no longer exists."""
    runtime = open_cli_runtime(console, db, root)
    try:
        reaped = runtime.deletion().reap_orphans(client)
    except ValidationError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1)
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)
    finally:
        runtime.close()

    if not reaped:
        console.print("[dim]No orphaned rows.[/]")
        return
    for filename, count in reaped.items():
        console.print(f"[green]✓[/] {filename}: {count} rows deleted")
