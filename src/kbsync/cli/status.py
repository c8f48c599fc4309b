"""kbsync status — training status of every source file for a client.

A file is TRAINED when the vector store holds rows for it created no earlier
than the file's last modification (minus the configured tolerance).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kbsync.cli.common import open_cli_runtime
from kbsync.cli.errors import err_invalid_input, err_storage
from kbsync.db.models import FileStatus, TrainingStatus
from kbsync.exceptions import StorageError, ValidationError

console = Console()


def status_cmd(
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Show which of a client's files are trained and which are stale."""
    runtime = open_cli_runtime(console, db, root)
    try:
        statuses = runtime.reconciler().status(client)
        row_counts = runtime.vectors.list_filenames(client)
    except ValidationError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1)
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)
    finally:
        runtime.close()

    if not statuses:
        console.print(
            Panel(
                "[dim]No files stored for this client.[/]\n"
                f"  Upload:  kbsync upload --client {client} PATH",
                title=f"[bold]Knowledge Base[/] [dim]{client}[/]",
                expand=False,
            )
        )
        return

    _show_table(client, statuses, row_counts)


def _show_table(client: str, statuses: list[FileStatus], row_counts: dict[str, int]) -> None:
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Status")
    table.add_column("File")
    table.add_column("Updated", style="dim")
    table.add_column("Rows", justify="right", style="dim")

    for s in statuses:
        mark = (
            "[green]✓ TRAINED[/]"
            if s.status is TrainingStatus.TRAINED
            else "[yellow]✗ NOT TRAINED[/]"
        )
        table.add_row(
            mark,
            s.name,
            s.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(row_counts.get(s.name, 0)),
        )

    trained = sum(1 for s in statuses if s.status is TrainingStatus.TRAINED)
    console.print(
        Panel(
            table,
            title=f"[bold]Knowledge Base[/] [dim]{client} ({trained}/{len(statuses)} trained)[/]",
            expand=False,
        )
    )
