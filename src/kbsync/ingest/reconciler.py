"""Is each source file reflected in the vector store?

A file is TRAINED iff at least one row exists for ``(client_id, filename)``
whose ``created_at`` is no more than ``tolerance_ms`` older than the file's
``updated_at``. The tolerance absorbs clock and latency skew between the two
stores. This is a read-only projection recomputed on every call.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import datetime, timedelta

from kbsync.db.models import FileStatus, RowFilter, SourceFile, TrainingStatus, VectorRow
from kbsync.db.repository import VectorStoreProtocol
from kbsync.exceptions import StorageError
from kbsync.storage.object_store import ObjectStore, validate_segment

DEFAULT_TOLERANCE_MS = 1000


def latest_by_filename(rows: Iterable[VectorRow]) -> dict[str, datetime]:
    """Map each filename to the newest ``created_at`` among its rows."""
    latest: dict[str, datetime] = {}
    for row in rows:
        if not row.filename or row.created_at is None:
            continue
        current = latest.get(row.filename)
        if current is None or row.created_at > current:
            latest[row.filename] = row.created_at
    return latest


def classify(
    updated_at: datetime,
    trained_at: datetime | None,
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> TrainingStatus:
    if trained_at is None:
        return TrainingStatus.NOT_TRAINED
    if trained_at >= updated_at - timedelta(milliseconds=tolerance_ms):
        return TrainingStatus.TRAINED
    return TrainingStatus.NOT_TRAINED


def reconcile(
    files: Iterable[SourceFile],
    rows: Iterable[VectorRow],
    tolerance_ms: int = DEFAULT_TOLERANCE_MS,
) -> list[FileStatus]:
    """Classify *files* against *rows*; output follows the order of *files*."""
    latest = latest_by_filename(rows)
    return [
        FileStatus(
            name=f.name,
            updated_at=f.updated_at,
            status=classify(f.updated_at, latest.get(f.name), tolerance_ms),
            trained_at=latest.get(f.name),
        )
        for f in files
    ]


class StatusReconciler:
    """Compute training status for every source file of a client."""

    def __init__(
        self,
        object_store: ObjectStore,
        vector_store: VectorStoreProtocol,
        tolerance_ms: int = DEFAULT_TOLERANCE_MS,
    ) -> None:
        self._objects = object_store
        self._vectors = vector_store
        self.tolerance_ms = tolerance_ms

    def status(self, client_id: str) -> list[FileStatus]:
        """Raises StorageError if either store cannot be read."""
        validate_segment(client_id, "client id")
        files = self._objects.list(client_id)
        try:
            rows = self._vectors.select_where(RowFilter(client_id=client_id))
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to fetch document status: {exc}") from exc
        return reconcile(files, rows, self.tolerance_ms)
