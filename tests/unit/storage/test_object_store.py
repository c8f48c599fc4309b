"""Tests for the filesystem-backed object store."""

from __future__ import annotations

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from kbsync.exceptions import ObjectExistsError, StorageError, ValidationError
from kbsync.storage.object_store import LocalObjectStore, object_path, validate_segment


# ------------------------------------------------------------------
# Paths
# ------------------------------------------------------------------


def test_object_path():
    assert object_path("acme", "my file.pdf") == "acme/my file.pdf"


@pytest.mark.parametrize("value", ["", "   ", ".", "..", "a/b", "a\\b", "nul\x00"])
def test_validate_segment_rejects(value):
    with pytest.raises(ValidationError):
        validate_segment(value, "file name")


def test_validate_segment_accepts_spaces_and_unicode():
    assert validate_segment("Menü 2026 (v2).pdf", "file name") == "Menü 2026 (v2).pdf"


# ------------------------------------------------------------------
# upload / list
# ------------------------------------------------------------------


def test_upload_and_list(objects):
    objects.upload("acme/b.txt", b"bee")
    objects.upload("acme/a.pdf", b"%PDF")
    files = objects.list("acme")
    assert [f.name for f in files] == ["a.pdf", "b.txt"]
    assert files[1].size == 3
    assert files[1].updated_at.tzinfo is not None
    assert files[0].content_type == "application/pdf"
    assert files[0].path == "acme/a.pdf"


def test_list_missing_client_is_empty(objects):
    assert objects.list("nobody") == []


def test_list_skips_dotfiles_and_dirs(objects, tmp_path):
    objects.upload("acme/a.txt", b"a")
    client_dir = tmp_path / "knowledge_base" / "acme"
    (client_dir / ".emptyFolderPlaceholder").write_bytes(b"")
    (client_dir / "sub").mkdir()
    assert [f.name for f in objects.list("acme")] == ["a.txt"]


def test_list_accepts_trailing_slash(objects):
    objects.upload("acme/a.txt", b"a")
    assert len(objects.list("acme/")) == 1


def test_list_skips_file_removed_during_scan(objects, tmp_path):
    objects.upload("acme/a.txt", b"a")
    client_dir = tmp_path / "knowledge_base" / "acme"
    scanned = [client_dir / "a.txt", client_dir / "ghost.txt"]
    with patch.object(Path, "iterdir", lambda self: iter(scanned)):
        files = objects.list("acme")
    assert [f.name for f in files] == ["a.txt"]


def test_upload_refuses_overwrite(objects):
    objects.upload("acme/a.txt", b"one")
    with pytest.raises(ObjectExistsError):
        objects.upload("acme/a.txt", b"two")
    assert objects.download("acme/a.txt") == b"one"


def test_upload_overwrite(objects):
    objects.upload("acme/a.txt", b"one")
    objects.upload("acme/a.txt", b"two", overwrite=True)
    assert objects.download("acme/a.txt") == b"two"


def test_upload_leaves_no_temp_files(objects, tmp_path):
    objects.upload("acme/a.txt", b"data")
    assert [p.name for p in (tmp_path / "knowledge_base" / "acme").iterdir()] == ["a.txt"]


def test_failed_upload_removes_temp_file(objects, tmp_path):
    with patch("kbsync.storage.object_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError, match="Failed to upload acme/a.txt: disk full"):
            objects.upload("acme/a.txt", b"data")
    assert list((tmp_path / "knowledge_base" / "acme").iterdir()) == []


def test_uploaded_object_is_world_readable(objects, tmp_path):
    objects.upload("acme/a.txt", b"data")
    mode = (tmp_path / "knowledge_base" / "acme" / "a.txt").stat().st_mode
    assert stat.S_IMODE(mode) == 0o644


def test_upload_rejects_nested_path(objects):
    with pytest.raises(ValidationError):
        objects.upload("acme/../../etc/passwd", b"x")


def test_upload_rejects_path_without_client(objects):
    with pytest.raises(ValidationError):
        objects.upload("lonely.txt", b"x")


# ------------------------------------------------------------------
# download / remove
# ------------------------------------------------------------------


def test_download_missing(objects):
    with pytest.raises(StorageError, match="Object not found"):
        objects.download("acme/missing.txt")


def test_remove_returns_only_existing(objects):
    objects.upload("acme/a.txt", b"a")
    assert objects.remove(["acme/a.txt", "acme/ghost.txt"]) == ["acme/a.txt"]
    assert objects.list("acme") == []


def test_store_is_usable_with_string_root(tmp_path):
    store = LocalObjectStore(str(tmp_path / "root"))
    store.upload("acme/a.txt", b"a")
    assert store.download("acme/a.txt") == b"a"
