"""Keep vector rows in step with deleted source files.

Also hosts the two bulk cleanups: purging everything for a client, and
reaping orphaned rows whose source file no longer exists (the out-of-band
fix for resets that failed during ingestion).
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from urllib.parse import quote

from kbsync.db.models import RowFilter
from kbsync.db.repository import VectorStore
from kbsync.exceptions import StorageError
from kbsync.storage.object_store import ObjectStore, object_path, validate_segment

logger = logging.getLogger(__name__)


def legacy_encoded_name(file_name: str) -> str:
    """Percent-encode *file_name* the way older uploads stored it in row metadata.

    Matches JavaScript's ``encodeURIComponent``.
    """
    return quote(file_name, safe="!~*'()")


@dataclass
class PurgeReport:
    client_id: str
    rows_deleted: int = 0
    files_deleted: int = 0
    errors: list[str] = field(default_factory=list)

    def to_response(self) -> dict:
        body: dict = {
            "success": not self.errors,
            "rowsDeleted": self.rows_deleted,
            "filesDeleted": self.files_deleted,
        }
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class DeletionSynchronizer:
    """Remove vector rows (and optionally source objects) for deleted files.

    Args:
        vector_store:            Vector store holding the rows.
        object_store:            Object store holding the source files.
        legacy_encoded_fallback: Retry deletes with the percent-encoded name
            when the exact name matches nothing and contains a space.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        object_store: ObjectStore,
        legacy_encoded_fallback: bool = True,
    ) -> None:
        self._vectors = vector_store
        self._objects = object_store
        self.legacy_encoded_fallback = legacy_encoded_fallback

    def delete_embeddings(self, client_id: str, file_name: str) -> int:
        """Delete every row for ``(client_id, file_name)``. Idempotent.

        Returns:
            Number of rows removed (0 when nothing matched).

        Raises:
            StorageError: The vector store rejected the delete.
        """
        validate_segment(client_id, "client id")
        validate_segment(file_name, "file name")
        logger.info("Deleting embeddings | client_id=%s file=%s", client_id, file_name)

        deleted = self._delete(client_id, file_name)
        logger.info("Deleted %d rows (exact match) | file=%s", deleted, file_name)

        # TODO: drop once no stored rows use percent-encoded filenames.
        if deleted == 0 and self.legacy_encoded_fallback and " " in file_name:
            encoded = legacy_encoded_name(file_name)
            deleted = self._delete(client_id, encoded)
            if deleted:
                logger.info("Deleted %d rows (encoded match: %s)", deleted, encoded)
        return deleted

    def delete_file(self, client_id: str, file_name: str) -> int:
        """Remove the source object, then its rows. Returns the rows removed.

        A source object that is already gone is not an error.
        """
        path = object_path(client_id, file_name)
        removed = self._objects.remove([path])
        if removed:
            logger.info("Removed source file | path=%s", path)
        return self.delete_embeddings(client_id, file_name)

    def purge_client(self, client_id: str) -> PurgeReport:
        """Delete every row and every source file for *client_id*.

        Each step is attempted even if the previous one failed; failures are
        collected in the report.
        """
        validate_segment(client_id, "client id")
        report = PurgeReport(client_id=client_id)
        logger.info("Purging knowledge base | client_id=%s", client_id)

        try:
            report.rows_deleted = self._vectors.delete_where(RowFilter(client_id=client_id))
        except sqlite3.Error as exc:
            msg = f"Failed to delete rows for {client_id}: {exc}"
            logger.error(msg)
            report.errors.append(msg)

        try:
            files = self._objects.list(client_id)
            if files:
                removed = self._objects.remove([f.path for f in files])
                report.files_deleted = len(removed)
        except StorageError as exc:
            msg = f"Failed to delete files for {client_id}: {exc}"
            logger.error(msg)
            report.errors.append(msg)

        logger.info(
            "Purged | client_id=%s rows=%d files=%d",
            client_id, report.rows_deleted, report.files_deleted,
        )
        return report

    def reap_orphans(self, client_id: str) -> dict[str, int]:
        """Delete rows whose filename has no matching source file.

        Returns:
            ``{filename: rows_deleted}`` for every orphaned filename.
        """
        validate_segment(client_id, "client id")
        present = {f.name for f in self._objects.list(client_id)}
        reaped: dict[str, int] = {}
        for filename in self._vectors.list_filenames(client_id):
            if filename in present:
                continue
            reaped[filename] = self._delete(client_id, filename)
            logger.info(
                "Reaped %d orphaned rows | client_id=%s file=%s",
                reaped[filename], client_id, filename,
            )
        return reaped

    def _delete(self, client_id: str, filename: str) -> int:
        try:
            return self._vectors.delete_where(RowFilter(client_id=client_id, filename=filename))
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete rows for {filename}: {exc}") from exc
