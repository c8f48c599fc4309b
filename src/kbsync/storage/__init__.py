"""Object storage for per-client source files."""

from kbsync.storage.object_store import LocalObjectStore, ObjectStore, object_path

__all__ = ["LocalObjectStore", "ObjectStore", "object_path"]
