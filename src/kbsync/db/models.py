"""Domain models for the kbsync storage layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath

DEFAULT_SOURCE = "admin-upload"

_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".log": "text/plain",
    ".rst": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".html": "text/html",
    ".htm": "text/html",
    ".xml": "application/xml",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
}


@dataclass(frozen=True)
class RowMetadata:
    """Typed metadata attached to every vector row."""

    client_id: str
    filename: str
    source: str = DEFAULT_SOURCE
    extra: dict = field(default_factory=dict, compare=False, hash=False)

    def to_json(self) -> str:
        payload = dict(self.extra)
        payload.update(client_id=self.client_id, filename=self.filename, source=self.source)
        return json.dumps(payload, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "RowMetadata":
        data = json.loads(raw or "{}")
        client_id = str(data.pop("client_id", ""))
        filename = str(data.pop("filename", ""))
        source = str(data.pop("source", DEFAULT_SOURCE))
        return cls(client_id=client_id, filename=filename, source=source, extra=data)


@dataclass(frozen=True)
class RowFilter:
    """Typed predicate for vector-store reads and deletes.

    ``filename=None`` matches every row of the client.
    """

    client_id: str
    filename: str | None = None


@dataclass
class VectorRow:
    content: str
    embedding: list[float]
    client_id: str
    metadata: RowMetadata
    embedding_model: str = ""
    created_at: datetime | None = None  # assigned by the store on insert
    rowid: int | None = None

    @property
    def filename(self) -> str:
        return self.metadata.filename


@dataclass
class SourceFile:
    """An object in per-client storage, keyed by (client_id, name)."""

    client_id: str
    name: str
    size: int
    updated_at: datetime

    @property
    def path(self) -> str:
        return f"{self.client_id}/{self.name}"

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES.get(PurePosixPath(self.name).suffix.lower(), "application/octet-stream")


class TrainingStatus(str, Enum):
    TRAINED = "TRAINED"
    NOT_TRAINED = "NOT_TRAINED"

    @property
    def label(self) -> str:
        """Operator-facing label ("NOT TRAINED" keeps the space)."""
        return self.value.replace("_", " ")


@dataclass
class FileStatus:
    name: str
    updated_at: datetime
    status: TrainingStatus
    trained_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "updated_at": format_timestamp(self.updated_at),
            "status": self.status.label,
        }


# ------------------------------------------------------------------
# Timestamp helpers
# ------------------------------------------------------------------


def parse_timestamp(value: str) -> datetime:
    """Parse a store timestamp (ISO-8601, optional trailing Z) as aware UTC."""
    text = value.strip().replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format as millisecond-precision ISO-8601 UTC with a trailing Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
