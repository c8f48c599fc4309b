"""Idempotent delete-then-insert of one file's vector rows.

For a given ``(client_id, filename)``:
1. ``reset()`` deletes every existing row (retried, then best-effort).
2. ``write_file()`` embeds the chunks batch by batch and inserts each batch
   as one transaction. A failing batch is recorded on its
   :class:`BatchOutcome`; later batches still run.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from kbsync.db.models import DEFAULT_SOURCE, RowFilter, RowMetadata, VectorRow
from kbsync.db.repository import VectorStoreProtocol
from kbsync.exceptions import EmbeddingProviderError, IndexWriteError
from kbsync.ingest.embedding_client import EmbeddingClient, batches

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    """Result of embedding + inserting one batch of chunks."""

    index: int
    size: int
    written: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IndexWriter:
    """Write one file's chunks to the vector store.

    Args:
        store:         Vector store (see kbsync.db.repository.VectorStore).
        embedder:      Embedding client; its ``batch_size`` sets the batch size.
        source:        Value for ``metadata.source`` on every row.
        reset_retries: Extra attempts for ``reset()`` before giving up.
    """

    def __init__(
        self,
        store: VectorStoreProtocol,
        embedder: EmbeddingClient,
        source: str = DEFAULT_SOURCE,
        reset_retries: int = 2,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._source = source
        self._reset_retries = reset_retries

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self, client_id: str, filename: str) -> int | None:
        """Delete all rows for the pair. Returns the count, or None if every attempt failed."""
        attempts = self._reset_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                deleted = self._store.delete_where(RowFilter(client_id=client_id, filename=filename))
            except (sqlite3.Error, OSError) as exc:
                logger.warning(
                    "Reset failed | client_id=%s file=%s attempt=%d/%d error=%s",
                    client_id, filename, attempt, attempts, exc,
                )
                continue
            if deleted:
                logger.info("Cleared %d old rows | client_id=%s file=%s", deleted, client_id, filename)
            return deleted
        logger.error(
            "Could not clear old rows; stale rows may remain | client_id=%s file=%s",
            client_id, filename,
        )
        return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write_batch(
        self,
        client_id: str,
        filename: str,
        chunks: list[str],
        vectors: list[list[float]],
    ) -> int:
        """Insert one batch of rows. Returns the number of rows written.

        Raises:
            IndexWriteError: Count mismatch, wrong dimensionality, or a store failure.
        """
        if len(chunks) != len(vectors):
            raise IndexWriteError(f"{len(chunks)} chunks but {len(vectors)} vectors")
        metadata = RowMetadata(client_id=client_id, filename=filename, source=self._source)
        rows = [
            VectorRow(content=text, embedding=vector, client_id=client_id, metadata=metadata)
            for text, vector in zip(chunks, vectors)
        ]
        try:
            return len(self._store.insert_rows(rows))
        except (sqlite3.Error, ValueError) as exc:
            raise IndexWriteError(str(exc)) from exc

    def write_file(self, client_id: str, filename: str, chunks: list[str]) -> list[BatchOutcome]:
        """Embed and insert *chunks* batch by batch."""
        outcomes: list[BatchOutcome] = []
        for index, group in enumerate(batches(chunks, self._embedder.batch_size)):
            outcome = BatchOutcome(index=index, size=len(group))
            try:
                vectors = self._embedder.embed(group)
                outcome.written = self.write_batch(client_id, filename, group, vectors)
            except EmbeddingProviderError as exc:
                outcome.error = f"Batch processing failed for {filename}: {exc}"
                logger.error("Embedding batch %d failed | file=%s error=%s", index, filename, exc)
            except IndexWriteError as exc:
                outcome.error = f"Batch insert failed for {filename}: {exc}"
                logger.error("Insert batch %d failed | file=%s error=%s", index, filename, exc)
            outcomes.append(outcome)
        return outcomes
