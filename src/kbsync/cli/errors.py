"""kbsync rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from kbsync.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(detail: str) -> str:
    """Embedding provider credentials missing.

    Example:
        No API key found for provider 'openai'. Set the OPENAI_API_KEY environment variable.
    """
    return (
        f"[red]Error:[/] {detail}\n"
        "  Example:  export OPENAI_API_KEY=sk-..."
    )


def err_config(detail: str) -> str:
    """Config file is invalid or contains a forbidden key."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix kbsync.yaml (or ~/.kbsync/config.yaml) and retry."
    )


def err_invalid_input(detail: str) -> str:
    """Bad client id / file name."""
    return (
        f"[red]Error:[/] {detail}\n"
        "  Client ids and file names must be single path segments (no '/')."
    )


def err_no_files(client_id: str) -> str:
    """No --file given and no files in storage."""
    return (
        f"[red]Error:[/] No files to ingest for client '{client_id}'.\n"
        f"  Upload first:  kbsync upload --client {client_id} PATH\n"
        "  Or name files: kbsync ingest --client ID --file NAME"
    )


def err_storage(detail: str) -> str:
    """Object or vector store could not be read."""
    return (
        f"[red]Error:[/] Storage unavailable: {detail}\n"
        "  Check storage.root and storage.db_path in kbsync.yaml."
    )


def err_file_exists(name: str, client_id: str) -> str:
    """Upload target already exists."""
    return (
        f"[yellow]Exists:[/] '{name}' is already stored for client '{client_id}'.\n"
        "  Re-run with --overwrite to replace it (it will show as NOT TRAINED until re-ingested)."
    )


def err_total_failure(errors: list[str]) -> str:
    """Ingestion wrote nothing and every unit failed."""
    details = "\n".join(f"    - {e}" for e in errors)
    return (
        "[red]Error:[/] Processing failed — no chunks were written.\n"
        f"{details}\n"
        "  Fix the files above and run kbsync ingest again."
    )


def warn_partial(errors: list[str]) -> str:
    """Some files or batches failed but at least one chunk was written."""
    details = "\n".join(f"    - {e}" for e in errors)
    return (
        f"[yellow]⚠ Completed with {len(errors)} error(s):[/]\n"
        f"{details}\n"
        "  Re-run kbsync ingest for the affected files; re-ingesting replaces their rows."
    )


def warn_stale_rows(file_name: str) -> str:
    """Reset before insert failed; old rows may remain."""
    return (
        f"[yellow]⚠[/] Old rows for '{file_name}' could not be cleared; duplicates may remain.\n"
        "  Re-ingest the file once the vector store is healthy to replace them."
    )
