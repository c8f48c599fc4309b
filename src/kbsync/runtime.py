"""Wire configuration, stores and pipeline components together.

Used by the CLI commands and the HTTP app so both run the same pipeline
against the same stores.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from kbsync.config import KbSyncConfig
from kbsync.db.connection import Database
from kbsync.db.migrations import initialize
from kbsync.db.repository import VectorStore
from kbsync.ingest.deletion import DeletionSynchronizer
from kbsync.ingest.embedding_client import EmbeddingClient
from kbsync.ingest.orchestrator import IngestionOrchestrator
from kbsync.ingest.reconciler import StatusReconciler
from kbsync.storage.object_store import LocalObjectStore, ObjectStore


@dataclass
class Runtime:
    config: KbSyncConfig
    conn: sqlite3.Connection
    vectors: VectorStore
    objects: ObjectStore
    embedder: EmbeddingClient

    def orchestrator(self) -> IngestionOrchestrator:
        return IngestionOrchestrator(self.objects, self.vectors, self.embedder, self.config)

    def reconciler(self) -> StatusReconciler:
        return StatusReconciler(self.objects, self.vectors, self.config.status.tolerance_ms)

    def deletion(self) -> DeletionSynchronizer:
        return DeletionSynchronizer(
            self.vectors,
            self.objects,
            legacy_encoded_fallback=self.config.deletion.legacy_encoded_fallback,
        )

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_runtime(config: KbSyncConfig, objects: ObjectStore | None = None) -> Runtime:
    """Open (or create) the database, run migrations and build the components."""
    conn = Database(config.storage.db_path).connect()
    initialize(conn)
    vectors = VectorStore(conn, config.embedding.model, config.embedding.dimensions)
    return Runtime(
        config=config,
        conn=conn,
        vectors=vectors,
        objects=objects or LocalObjectStore(config.storage.root),
        embedder=EmbeddingClient(config.embedding),
    )
