"""kbsync CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from kbsync.cli.ingest import ingest_cmd
from kbsync.cli.purge import purge_cmd, reap_cmd
from kbsync.cli.remove import remove_cmd
from kbsync.cli.serve import serve_cmd
from kbsync.cli.status import status_cmd
from kbsync.cli.upload import upload_cmd
from kbsync.config import ConfigError, load_config
from kbsync.log import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("kbsync")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"kbsync {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="kbsync",
    help=(
        "kbsync — per-client knowledge-base ingestion for chat widgets.\n\n"
        "  kbsync upload   Put source files into a client's storage.\n"
        "  kbsync ingest   Chunk, embed and index them (idempotent).\n"
        "  kbsync status   Show which files are trained or stale."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR (default: logging.level from config)."),
    ] = None,
) -> None:
    """kbsync — per-client knowledge-base ingestion for chat widgets."""
    if log_level is None:
        try:
            log_level = load_config().logging.level
        except ConfigError:
            # The command itself reports the config error.
            log_level = "WARNING"
    configure_logging(log_level)


app.command("upload")(upload_cmd)
app.command("ingest")(ingest_cmd)
app.command("status")(status_cmd)
app.command("remove")(remove_cmd)
app.command("purge")(purge_cmd)
app.command("reap")(reap_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed kbsync version."""
    typer.echo(f"kbsync {_version()}")


if __name__ == "__main__":
    app()
