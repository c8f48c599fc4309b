"""kbsync serve — run the HTTP API with uvicorn."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console

from kbsync.api.app import create_app
from kbsync.cli.common import load_cli_config

console = Console()


def serve_cmd(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port.")] = None,
    db: Annotated[Path | None, typer.Option("--db", help="Path to the vector database.")] = None,
    root: Annotated[Path | None, typer.Option("--root", help="Object storage root directory.")] = None,
) -> None:
    """Serve the ingestion, status and deletion endpoints over HTTP."""
    cfg = load_cli_config(console, db=db, root=root)
    if host is not None:
        cfg.server.host = host
    if port is not None:
        cfg.server.port = port

    app = create_app(cfg)
    console.print(f"[bold]kbsync[/] listening on http://{cfg.server.host}:{cfg.server.port}")
    uvicorn.run(app, host=cfg.server.host, port=cfg.server.port, log_config=None)
