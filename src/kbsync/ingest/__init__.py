"""kbsync ingest pipeline components."""

from kbsync.ingest.chunker import TextChunker, chunk_text
from kbsync.ingest.deletion import DeletionSynchronizer
from kbsync.ingest.embedding_client import EmbeddingClient
from kbsync.ingest.extractor import extract
from kbsync.ingest.index_writer import IndexWriter
from kbsync.ingest.orchestrator import IngestionOrchestrator, IngestResult
from kbsync.ingest.reconciler import StatusReconciler, reconcile

__all__ = [
    "DeletionSynchronizer",
    "EmbeddingClient",
    "IndexWriter",
    "IngestResult",
    "IngestionOrchestrator",
    "StatusReconciler",
    "TextChunker",
    "chunk_text",
    "extract",
    "reconcile",
]
