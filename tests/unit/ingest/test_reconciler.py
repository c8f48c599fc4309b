"""Tests for the training-status reconciler."""

from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from kbsync.db.models import RowMetadata, SourceFile, TrainingStatus, VectorRow
from kbsync.exceptions import StorageError, ValidationError
from kbsync.ingest.reconciler import StatusReconciler, classify, latest_by_filename, reconcile

T = datetime(2026, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _row(filename, created_at=None, client="acme"):
    return VectorRow(
        content="text",
        embedding=[1.0, 2.0, 3.0],
        client_id=client,
        metadata=RowMetadata(client_id=client, filename=filename),
        created_at=created_at,
    )


def _file(name, updated_at=T):
    return SourceFile(client_id="acme", name=name, size=10, updated_at=updated_at)


# ------------------------------------------------------------------
# classify
# ------------------------------------------------------------------


def test_trained_within_tolerance():
    assert classify(T, T - timedelta(milliseconds=500)) is TrainingStatus.TRAINED


def test_not_trained_outside_tolerance():
    assert classify(T, T - timedelta(milliseconds=2000)) is TrainingStatus.NOT_TRAINED


def test_tolerance_boundary_is_inclusive():
    assert classify(T, T - timedelta(milliseconds=1000)) is TrainingStatus.TRAINED


def test_rows_newer_than_file_are_trained():
    assert classify(T, T + timedelta(minutes=5)) is TrainingStatus.TRAINED


def test_no_rows_is_not_trained():
    assert classify(T, None) is TrainingStatus.NOT_TRAINED


def test_custom_tolerance():
    assert classify(T, T - timedelta(seconds=3), tolerance_ms=5000) is TrainingStatus.TRAINED


# ------------------------------------------------------------------
# reconcile
# ------------------------------------------------------------------


def test_latest_by_filename_takes_max():
    rows = [_row("a.txt", T), _row("a.txt", T + timedelta(seconds=1)), _row("b.txt", T)]
    latest = latest_by_filename(rows)
    assert latest == {"a.txt": T + timedelta(seconds=1), "b.txt": T}


def test_latest_ignores_rows_without_timestamp():
    assert latest_by_filename([_row("a.txt", None)]) == {}


def test_reconcile_follows_file_order_and_ignores_orphan_rows():
    files = [_file("b.txt"), _file("a.txt")]
    rows = [_row("a.txt", T), _row("gone.txt", T)]
    result = reconcile(files, rows)
    assert [s.name for s in result] == ["b.txt", "a.txt"]
    assert [s.status for s in result] == [TrainingStatus.NOT_TRAINED, TrainingStatus.TRAINED]


def test_status_dict_shape():
    status = reconcile([_file("a.txt")], [])[0]
    assert status.to_dict() == {
        "name": "a.txt",
        "updated_at": "2026-05-01T12:00:00.000Z",
        "status": "NOT TRAINED",
    }


# ------------------------------------------------------------------
# StatusReconciler against real stores
# ------------------------------------------------------------------


def test_status_end_to_end(objects, store, tmp_path):
    objects.upload("acme/fresh.txt", b"fresh")
    objects.upload("acme/stale.txt", b"stale")
    objects.upload("acme/never.txt", b"never")
    store.insert_rows([_row("fresh.txt"), _row("stale.txt")])

    # stale.txt was re-uploaded an hour after its rows were written
    later = (datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()
    os.utime(tmp_path / "knowledge_base" / "acme" / "stale.txt", (later, later))

    statuses = {s.name: s.status for s in StatusReconciler(objects, store).status("acme")}
    assert statuses == {
        "fresh.txt": TrainingStatus.TRAINED,
        "never.txt": TrainingStatus.NOT_TRAINED,
        "stale.txt": TrainingStatus.NOT_TRAINED,
    }


def test_status_unknown_client_is_empty(objects, store):
    assert StatusReconciler(objects, store).status("nobody") == []


def test_status_read_failure(objects, store):
    objects.upload("acme/a.txt", b"x")
    with patch.object(store, "select_where", side_effect=sqlite3.OperationalError("boom")):
        with pytest.raises(StorageError, match="Failed to fetch document status"):
            StatusReconciler(objects, store).status("acme")


def test_status_rejects_bad_client(objects, store):
    with pytest.raises(ValidationError):
        StatusReconciler(objects, store).status("../etc")
