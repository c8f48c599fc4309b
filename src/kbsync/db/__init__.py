"""kbsync database layer: SQLite rows + sqlite-vec embeddings."""

from kbsync.db.connection import Database
from kbsync.db.migrations import MIGRATIONS, initialize, run_migrations
from kbsync.db.repository import VectorStore
from kbsync.db.vectors import ensure_vec_table, model_to_slug, vec_table_name

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "VectorStore",
    "ensure_vec_table",
    "model_to_slug",
    "vec_table_name",
]
