"""Vector store: SQLite ``rag_documents`` rows + sqlite-vec embeddings.

Every read and delete takes a typed :class:`RowFilter`; the vec table rowid is
kept equal to ``rag_documents.id``.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from typing import Protocol

from kbsync.db.models import RowFilter, RowMetadata, VectorRow, parse_timestamp
from kbsync.db.vectors import ensure_vec_table, list_vec_tables


class VectorStoreProtocol(Protocol):
    """What the pipeline needs from a vector store."""

    def insert_rows(self, rows: list[VectorRow]) -> list[int]: ...

    def delete_where(self, where: RowFilter) -> int: ...

    def select_where(self, where: RowFilter) -> list[VectorRow]: ...

    def count_where(self, where: RowFilter) -> int: ...


class VectorStore:
    """Data access layer for vector rows.

    Wraps an open sqlite3.Connection owned by the caller. Each public method is
    one locked unit of work, so the store can be shared by ingestion worker
    threads; the lock is never held across embedding calls or object-store I/O.
    """

    def __init__(self, conn: sqlite3.Connection, embedding_model: str, dimensions: int) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see kbsync.db.migrations.initialize).
            embedding_model: Model whose vec table receives new embeddings.
            dimensions: Vector dimensionality that model produces.
        """
        self._conn = conn
        self._lock = threading.Lock()
        self.embedding_model = embedding_model
        self.dimensions = dimensions
        with self._lock:
            self.vec_table = ensure_vec_table(conn, embedding_model, dimensions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_rows(self, rows: list[VectorRow]) -> list[int]:
        """Insert *rows* in one transaction. Returns the new row ids.

        Either every row is committed or none is.

        Raises:
            ValueError: If an embedding does not match the store's dimensions.
            sqlite3.Error: On any database failure (transaction rolled back).
        """
        for row in rows:
            if len(row.embedding) != self.dimensions:
                raise ValueError(
                    f"Embedding has {len(row.embedding)} dimensions, "
                    f"store expects {self.dimensions}"
                )

        ids: list[int] = []
        with self._lock:
            try:
                for row in rows:
                    cur = self._conn.execute(
                        """
                        INSERT INTO rag_documents
                            (client_id, filename, source, content, metadata, embedding_model)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            row.client_id,
                            row.metadata.filename,
                            row.metadata.source,
                            row.content,
                            row.metadata.to_json(),
                            self.embedding_model,
                        ),
                    )
                    rowid = cur.lastrowid
                    self._conn.execute(
                        f"INSERT INTO {self.vec_table}(rowid, embedding) VALUES (?, ?)",
                        (rowid, json.dumps(row.embedding)),
                    )
                    ids.append(rowid)
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return ids

    def delete_where(self, where: RowFilter) -> int:
        """Delete rows (and their embeddings) matching *where*. Returns the row count."""
        clause, params = _where_sql(where)
        with self._lock:
            try:
                ids = [
                    r[0]
                    for r in self._conn.execute(
                        f"SELECT id FROM rag_documents WHERE {clause}", params  # noqa: S608
                    ).fetchall()
                ]
                if not ids:
                    return 0
                placeholders = ",".join("?" * len(ids))
                for table in list_vec_tables(self._conn):
                    self._conn.execute(
                        f"DELETE FROM [{table}] WHERE rowid IN ({placeholders})",  # noqa: S608
                        ids,
                    )
                cur = self._conn.execute(
                    f"DELETE FROM rag_documents WHERE id IN ({placeholders})",  # noqa: S608
                    ids,
                )
                self._conn.commit()
                return cur.rowcount
            except sqlite3.Error:
                self._conn.rollback()
                raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def select_where(self, where: RowFilter) -> list[VectorRow]:
        """Return rows matching *where*, oldest first.

        Embeddings are left empty; the status reconciler needs timestamps and
        metadata only.
        """
        clause, params = _where_sql(where)
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT id, client_id, content, metadata, embedding_model, created_at
                FROM rag_documents WHERE {clause} ORDER BY id
                """,  # noqa: S608
                params,
            ).fetchall()
        return [_row_to_vector_row(r) for r in rows]

    def count_where(self, where: RowFilter) -> int:
        """Return the number of rows matching *where*."""
        clause, params = _where_sql(where)
        with self._lock:
            return self._conn.execute(
                f"SELECT COUNT(*) FROM rag_documents WHERE {clause}", params  # noqa: S608
            ).fetchone()[0]

    def list_filenames(self, client_id: str) -> dict[str, int]:
        """Return ``{filename: row_count}`` for *client_id*."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT filename, COUNT(*) AS n FROM rag_documents
                WHERE client_id = ? GROUP BY filename ORDER BY filename
                """,
                (client_id,),
            ).fetchall()
        return {r["filename"]: r["n"] for r in rows}


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _where_sql(where: RowFilter) -> tuple[str, tuple]:
    if where.filename is None:
        return "client_id = ?", (where.client_id,)
    return "client_id = ? AND filename = ?", (where.client_id, where.filename)


def _row_to_vector_row(row: sqlite3.Row) -> VectorRow:
    return VectorRow(
        rowid=row["id"],
        client_id=row["client_id"],
        content=row["content"],
        embedding=[],
        metadata=RowMetadata.from_json(row["metadata"]),
        embedding_model=row["embedding_model"],
        created_at=parse_timestamp(row["created_at"]),
    )
