"""kbsync upload — put local files into a client's object storage.

Uploading does not index anything; the file shows as NOT TRAINED until the
next ``kbsync ingest``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from kbsync.cli.common import load_cli_config
from kbsync.cli.errors import err_file_exists, err_invalid_input, err_storage
from kbsync.exceptions import ObjectExistsError, StorageError, ValidationError
from kbsync.ingest.extractor import is_supported
from kbsync.storage.object_store import LocalObjectStore, object_path

console = Console()


def upload_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Local files to upload.")],
    client: Annotated[str, typer.Option("--client", "-c", help="Client id.")],
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Replace files that already exist in storage."),
    ] = False,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Upload files to a client's knowledge-base storage."""
    cfg = load_cli_config(console, root=root)
    store = LocalObjectStore(cfg.storage.root)

    failures = 0
    for path in paths:
        if not path.is_file():
            console.print(f"[red]✗ Not a file:[/] {path}")
            failures += 1
            continue
        if not is_supported(path.name):
            console.print(f"[yellow]⚠ Unsupported type {path.suffix!r}; ingest will skip it:[/] {path.name}")
        try:
            stored = store.upload(object_path(client, path.name), path.read_bytes(), overwrite=overwrite)
        except ValidationError as exc:
            console.print(err_invalid_input(str(exc)))
            raise typer.Exit(1)
        except ObjectExistsError:
            console.print(err_file_exists(path.name, client))
            failures += 1
            continue
        except StorageError as exc:
            console.print(err_storage(str(exc)))
            failures += 1
            continue
        console.print(f"[green]✓[/] {stored.path} ({stored.size:,} bytes)")

    if failures:
        raise typer.Exit(1)
