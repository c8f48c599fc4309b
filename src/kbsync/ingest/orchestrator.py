"""Drive the ingestion pipeline across a client's files.

Per file:
  reset (delete old rows) → download → extract → chunk → embed + write

File- and batch-level failures are recorded and the run moves on; only
request-level problems (bad input, missing credentials) raise. Files run
sequentially by default; ``ingest.max_workers > 1`` processes files on a
bounded thread pool. Results are always reported in request order.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from kbsync.config import KbSyncConfig
from kbsync.db.repository import VectorStoreProtocol
from kbsync.exceptions import EmptyDocumentError, ExtractionError, StorageError, ValidationError
from kbsync.ingest.chunker import TextChunker
from kbsync.ingest.embedding_client import EmbeddingClient
from kbsync.ingest.extractor import extract
from kbsync.ingest.index_writer import BatchOutcome, IndexWriter
from kbsync.storage.object_store import ObjectStore, object_path, validate_segment

logger = logging.getLogger(__name__)


@dataclass
class FileReport:
    """Outcome of ingesting one file."""

    file_name: str
    chunks_written: int = 0
    chunk_count: int = 0
    reset_ok: bool = True
    batches: list[BatchOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class IngestResult:
    """Aggregate outcome of one ingestion request."""

    chunks_processed: int = 0
    errors: list[str] = field(default_factory=list)
    files: list[FileReport] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Partial success counts: only a run where nothing was written and
        something failed is a failure."""
        return self.chunks_processed > 0 or not self.errors

    def to_response(self) -> dict:
        if not self.success:
            return {"success": False, "error": "Processing failed", "details": list(self.errors)}
        body: dict = {"success": True, "chunksProcessed": self.chunks_processed}
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class IngestionOrchestrator:
    """Run ingestion for ``(client_id, [file_names])``.

    Args:
        object_store: Source of the raw files.
        vector_store: Destination of the vector rows.
        embedder:     Embedding client (also sets the batch size).
        config:       Full configuration; ``chunking`` and ``ingest`` are used.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        vector_store: VectorStoreProtocol,
        embedder: EmbeddingClient,
        config: KbSyncConfig | None = None,
    ) -> None:
        self._config = config or KbSyncConfig()
        self._objects = object_store
        self._embedder = embedder
        self._chunker = TextChunker(
            target_size=self._config.chunking.target_size,
            overlap=self._config.chunking.overlap,
        )
        self._writer = IndexWriter(
            vector_store,
            embedder,
            source=self._config.ingest.source,
            reset_retries=self._config.ingest.reset_retries,
        )

    def ingest(self, client_id: str, file_names: list[str]) -> IngestResult:
        """Ingest *file_names* for *client_id*.

        Raises:
            ValidationError: Missing client id or file names.
            ConfigurationError: Embedding provider credentials are missing.
        """
        names = self._validate(client_id, file_names)
        self._embedder.check_credentials()

        logger.info("Starting ingestion | client_id=%s files=%s", client_id, names)
        started = time.monotonic()
        budget = self._config.ingest.time_budget_s
        workers = min(self._config.ingest.max_workers, len(names))

        def run(name: str) -> FileReport:
            if budget is not None and time.monotonic() - started > budget:
                msg = f"Skipped {name}: time budget of {budget:g}s exhausted"
                logger.warning(msg)
                return FileReport(file_name=name, errors=[msg])
            return self.ingest_file(client_id, name)

        if workers <= 1:
            reports = [run(name) for name in names]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kbsync-ingest") as pool:
                reports = list(pool.map(run, names))

        result = IngestResult(files=reports)
        for report in reports:
            result.chunks_processed += report.chunks_written
            result.errors.extend(report.errors)

        logger.info(
            "Completed ingestion | client_id=%s chunks=%d errors=%d elapsed=%.1fs",
            client_id, result.chunks_processed, len(result.errors), time.monotonic() - started,
        )
        return result

    def ingest_file(self, client_id: str, file_name: str) -> FileReport:
        """Run the full pipeline for one file. Never raises for file-level failures."""
        report = FileReport(file_name=file_name)
        logger.info("Processing file | client_id=%s file=%s", client_id, file_name)

        # 1. Reset: delete-before-insert keeps re-ingestion idempotent
        report.reset_ok = self._writer.reset(client_id, file_name) is not None

        # 2. Fetch
        try:
            raw = self._objects.download(object_path(client_id, file_name))
        except StorageError as exc:
            msg = f"Download failed for {file_name}: {exc}"
            logger.error(msg)
            report.errors.append(msg)
            return report

        # 3. Extract
        try:
            text = extract(raw, file_name)
        except EmptyDocumentError as exc:
            msg = str(exc)
            logger.error(msg)
            report.errors.append(msg)
            return report
        except ExtractionError as exc:
            msg = f"Parsing failed for {file_name}: {exc}"
            logger.error(msg)
            report.errors.append(msg)
            return report

        # 4. Chunk
        chunks = self._chunker.chunk(text)
        report.chunk_count = len(chunks)
        logger.info("Generated %d chunks | file=%s", len(chunks), file_name)

        # 5. Embed + write
        report.batches = self._writer.write_file(client_id, file_name, chunks)
        for outcome in report.batches:
            report.chunks_written += outcome.written
            if outcome.error:
                report.errors.append(outcome.error)
        return report

    @staticmethod
    def _validate(client_id: str, file_names: list[str] | None) -> list[str]:
        if not client_id or not file_names:
            raise ValidationError("Missing clientId or fileNames")
        validate_segment(client_id, "client id")
        names: list[str] = []
        for name in file_names:
            if not isinstance(name, str):
                raise ValidationError(f"File names must be strings, got {type(name).__name__}")
            validate_segment(name, "file name")
            if name not in names:
                names.append(name)
        return names
