"""kbsync — per-client knowledge-base ingestion and consistency pipeline."""

__version__ = "0.1.0"
