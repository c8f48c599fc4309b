"""Shared CLI plumbing: config loading with flag overrides, runtime opening."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from kbsync.cli.errors import err_config
from kbsync.config import ConfigError, KbSyncConfig, load_config
from kbsync.runtime import Runtime, open_runtime


def load_cli_config(
    console: Console,
    db: Path | None = None,
    root: Path | None = None,
) -> KbSyncConfig:
    """Load config and apply --db / --root overrides (CLI flags win)."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if db is not None:
        cfg.storage.db_path = str(db)
    if root is not None:
        cfg.storage.root = str(root)
    return cfg


def open_cli_runtime(console: Console, db: Path | None, root: Path | None) -> Runtime:
    return open_runtime(load_cli_config(console, db=db, root=root))
