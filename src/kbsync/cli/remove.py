"""kbsync remove — delete a source file and its vector rows.

Usage:
  kbsync remove --client acme --file "price list.pdf"
  kbsync remove --client acme --file old.md --keep-file --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from kbsync.cli.common import open_cli_runtime
from kbsync.cli.errors import err_invalid_input, err_storage
from kbsync.db.models import RowFilter
from kbsync.exceptions import StorageError, ValidationError
from kbsync.storage.object_store import object_path

console = Console()


def remove_cmd(
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    file: Annotated[str, typer.Option("--file", "-f", help="File name to remove.")],
    keep_file: Annotated[
        bool,
        typer.Option("--keep-file", help="Only delete the vector rows; leave the source file."),
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Remove a file's embeddings (and the file itself unless --keep-file)."""
    runtime = open_cli_runtime(console, db, root)
    try:
        try:
            object_path(client, file)
        except ValidationError as exc:
            console.print(err_invalid_input(str(exc)))
            raise typer.Exit(1)
        rows = runtime.vectors.count_where(RowFilter(client_id=client, filename=file))

        console.print(f"\nRemove: [bold]{client}/{file}[/]")
        console.print(
            f"  Rows: {rows}  |  Source file: {'kept' if keep_file else 'deleted'}"
        )
        if not yes and not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        sync = runtime.deletion()
        try:
            if keep_file:
                deleted = sync.delete_embeddings(client, file)
            else:
                deleted = sync.delete_file(client, file)
        except ValidationError as exc:
            console.print(err_invalid_input(str(exc)))
            raise typer.Exit(1)
        except StorageError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
    finally:
        runtime.close()

    console.print(f"[green]✓[/] Removed: {file}  ({deleted} rows deleted)")
