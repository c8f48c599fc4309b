"""Embedding tables for rag_documents, one sqlite-vec table per embedding model.

Switching ``embedding.model`` starts a fresh table; rows embedded by the
previous model stay in theirs until purged.
"""

from __future__ import annotations

import re
import sqlite3

from kbsync.exceptions import ConfigurationError

VEC_TABLE_PREFIX = "vec_rag_"

_DIMENSIONS_RE = re.compile(r"float\[(\d+)\]")


def model_to_slug(model: str) -> str:
    """Convert a provider/model string to a valid table name suffix.

    Examples:
        "openai/text-embedding-3-small" -> "openai_text_embedding_3_small"
        "ollama/nomic-embed-text" -> "ollama_nomic_embed_text"
    """
    if not model.strip():
        raise ValueError("embedding model must not be empty")
    return re.sub(r"[^a-z0-9]", "_", model.lower())


def vec_table_name(model: str) -> str:
    """Return the vec table that stores embeddings produced by *model*."""
    return VEC_TABLE_PREFIX + model_to_slug(model)


def vec_table_dimensions(conn: sqlite3.Connection, table: str) -> int | None:
    """Return the vector width *table* was created with, or None if it doesn't exist."""
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    if row is None:
        return None
    match = _DIMENSIONS_RE.search(row[0] or "")
    return int(match.group(1)) if match else None


def ensure_vec_table(conn: sqlite3.Connection, model: str, dimensions: int) -> str:
    """Create the vec table for *model* unless it already exists.

    The vec table rowid equals ``rag_documents.id``.

    Raises:
        ConfigurationError: The table exists with a different vector width,
            i.e. ``embedding.dimensions`` changed without changing the model.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    table = vec_table_name(model)
    existing = vec_table_dimensions(conn, table)
    if existing is None:
        conn.execute(
            f"CREATE VIRTUAL TABLE {table} USING vec0(embedding float[{dimensions}])"
        )
        conn.commit()
    elif existing != dimensions:
        raise ConfigurationError(
            f"{table} holds {existing}-dimension embeddings for {model}, "
            f"but embedding.dimensions is {dimensions}"
        )
    return table


def list_vec_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the names of every vec_rag_* table, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='table' AND name LIKE ? AND sql LIKE 'CREATE VIRTUAL TABLE%' "
        "ORDER BY name",
        (VEC_TABLE_PREFIX + "%",),
    ).fetchall()
    return [r[0] for r in rows]
