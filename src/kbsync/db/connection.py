"""Opening the kbsync vector database (SQLite + sqlite-vec)."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

# The API server and CLI commands (ingest, reap) may write the same file.
DEFAULT_BUSY_TIMEOUT_S = 5.0


class Database:
    """The knowledge-base database file holding rag_documents and its vec tables."""

    def __init__(self, db_path: Path | str, busy_timeout_s: float = DEFAULT_BUSY_TIMEOUT_S) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
            busy_timeout_s: How long a write waits on another process's lock.
        """
        self.db_path = Path(db_path)
        self.busy_timeout_s = busy_timeout_s
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection with sqlite-vec loaded and WAL journaling.

        The connection may be shared across worker threads; callers
        serialise access (see VectorStore).
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_s, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
