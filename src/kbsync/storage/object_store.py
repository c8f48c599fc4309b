"""Per-client object storage for knowledge-base source files.

Objects are addressed as ``"<client_id>/<file_name>"``. :class:`LocalObjectStore`
keeps them on the local filesystem under a root directory; anything that
satisfies :class:`ObjectStore` (e.g. a hosted bucket client) can replace it.
"""

from __future__ import annotations

import os
import stat
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from kbsync.db.models import SourceFile
from kbsync.exceptions import ObjectExistsError, StorageError, ValidationError

_OBJECT_MODE = 0o644


class ObjectStore(Protocol):
    """What the pipeline needs from object storage."""

    def list(self, prefix: str) -> list[SourceFile]: ...

    def download(self, path: str) -> bytes: ...

    def remove(self, paths: list[str]) -> list[str]: ...

    def upload(self, path: str, data: bytes, overwrite: bool = False) -> SourceFile: ...


def validate_segment(value: str, what: str) -> str:
    """Reject ids and names that are not a single safe path segment."""
    if not value or not value.strip():
        raise ValidationError(f"{what} must not be empty")
    if value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValidationError(f"Invalid {what}: {value!r}")
    return value


def object_path(client_id: str, file_name: str) -> str:
    """Return the storage path for *file_name* under *client_id*."""
    validate_segment(client_id, "client id")
    validate_segment(file_name, "file name")
    return f"{client_id}/{file_name}"


def _split(path: str) -> tuple[str, str]:
    client_id, sep, file_name = path.partition("/")
    if not sep:
        raise ValidationError(f"Object path must be '<client_id>/<file_name>', got {path!r}")
    validate_segment(client_id, "client id")
    validate_segment(file_name, "file name")
    return client_id, file_name


class LocalObjectStore:
    """Filesystem-backed object store rooted at *root*.

    ``updated_at`` is the file's modification time in UTC. Dot-files (e.g.
    bucket placeholders) are not listed.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def list(self, prefix: str) -> list[SourceFile]:
        """List objects directly under the client prefix, sorted by name.

        A prefix that does not exist yet lists as empty.
        """
        client_id = validate_segment(prefix.strip("/"), "client id")
        directory = self.root / client_id
        if not directory.exists():
            return []
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise StorageError(f"Failed to list files for {client_id}: {exc}") from exc

        files: list[SourceFile] = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                info = entry.stat()
            except FileNotFoundError:
                # Removed between the directory scan and the stat.
                continue
            except OSError as exc:
                raise StorageError(f"Failed to stat {client_id}/{entry.name}: {exc}") from exc
            if not stat.S_ISREG(info.st_mode):
                continue
            files.append(
                SourceFile(
                    client_id=client_id,
                    name=entry.name,
                    size=info.st_size,
                    updated_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
                )
            )
        return files

    def download(self, path: str) -> bytes:
        client_id, file_name = _split(path)
        target = self.root / client_id / file_name
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {path}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def remove(self, paths: list[str]) -> list[str]:
        """Remove *paths*; returns those that existed and were removed."""
        removed: list[str] = []
        for path in paths:
            client_id, file_name = _split(path)
            target = self.root / client_id / file_name
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageError(f"Failed to remove {path}: {exc}") from exc
            removed.append(path)
        return removed

    def upload(self, path: str, data: bytes, overwrite: bool = False) -> SourceFile:
        """Write *data* at *path* atomically.

        Raises:
            ObjectExistsError: The object exists and *overwrite* is False.
            StorageError: The write failed.
        """
        client_id, file_name = _split(path)
        directory = self.root / client_id
        target = directory / file_name
        if target.exists() and not overwrite:
            raise ObjectExistsError(f"Object already exists: {path} (use overwrite)")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".upload-")
        except OSError as exc:
            raise StorageError(f"Failed to upload {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            # mkstemp creates the file owner-only.
            os.chmod(tmp, _OBJECT_MODE)
            os.replace(tmp, target)
            info = target.stat()
        except OSError as exc:
            Path(tmp).unlink(missing_ok=True)
            raise StorageError(f"Failed to upload {path}: {exc}") from exc
        return SourceFile(
            client_id=client_id,
            name=file_name,
            size=info.st_size,
            updated_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
        )
