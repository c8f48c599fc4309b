"""Tests for storage-layer models and timestamp helpers."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from kbsync.db.models import (
    FileStatus,
    RowMetadata,
    SourceFile,
    TrainingStatus,
    format_timestamp,
    parse_timestamp,
)


def test_metadata_json_has_required_keys():
    meta = RowMetadata(client_id="acme", filename="faq.txt")
    assert json.loads(meta.to_json()) == {
        "client_id": "acme",
        "filename": "faq.txt",
        "source": "admin-upload",
    }


def test_metadata_from_json_keeps_unknown_keys():
    meta = RowMetadata.from_json('{"client_id": "acme", "filename": "a.pdf", "page": 2}')
    assert meta.filename == "a.pdf"
    assert meta.source == "admin-upload"
    assert meta.extra == {"page": 2}


def test_metadata_equality_ignores_extra():
    a = RowMetadata(client_id="acme", filename="a.txt", extra={"page": 1})
    b = RowMetadata(client_id="acme", filename="a.txt")
    assert a == b


def test_parse_timestamp_variants():
    expected = datetime(2026, 5, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
    assert parse_timestamp("2026-05-01T12:00:00.123Z") == expected
    assert parse_timestamp("2026-05-01 12:00:00.123") == expected
    assert parse_timestamp("2026-05-01T14:00:00.123+02:00") == expected


def test_format_timestamp_millis():
    value = datetime(2026, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert format_timestamp(value) == "2026-05-01T12:00:00.123Z"


def test_format_timestamp_converts_to_utc():
    value = datetime(2026, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(value) == "2026-05-01T12:00:00.000Z"


def test_status_labels():
    assert TrainingStatus.TRAINED.label == "TRAINED"
    assert TrainingStatus.NOT_TRAINED.label == "NOT TRAINED"


def test_file_status_to_dict():
    ts = datetime(2026, 5, 1, tzinfo=timezone.utc)
    assert FileStatus("a.txt", ts, TrainingStatus.TRAINED).to_dict() == {
        "name": "a.txt",
        "updated_at": "2026-05-01T00:00:00.000Z",
        "status": "TRAINED",
    }


def test_source_file_content_type():
    ts = datetime(2026, 5, 1, tzinfo=timezone.utc)
    assert SourceFile("acme", "Menu.PDF", 1, ts).content_type == "application/pdf"
    assert SourceFile("acme", "blob.bin", 1, ts).content_type == "application/octet-stream"
