"""Error taxonomy for the kbsync ingestion pipeline.

Request-level errors (validation, auth, configuration) are surfaced to the
caller. File- and batch-level errors (extraction, storage, embedding, index
write) are collected into the run's error list and never abort the run.
"""

from __future__ import annotations


class KbSyncError(Exception):
    """Base class for every kbsync error."""


class ValidationError(KbSyncError):
    """Bad or missing input from the caller."""


class AuthError(KbSyncError):
    """Caller is not authenticated."""


class ConfigurationError(KbSyncError):
    """Missing provider credentials or unusable configuration."""


class ExtractionError(KbSyncError):
    """A document payload could not be turned into text."""


class EmptyDocumentError(ExtractionError):
    """A document parsed fine but contained no text."""


class StorageError(KbSyncError):
    """An object-store or vector-store read/remove failed."""


class ObjectExistsError(StorageError):
    """An upload would overwrite an existing object."""


class EmbeddingProviderError(KbSyncError):
    """The embedding provider failed or returned a malformed response."""


class IndexWriteError(KbSyncError):
    """A batch of vector rows could not be written."""
