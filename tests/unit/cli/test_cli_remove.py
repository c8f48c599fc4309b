"""Tests for the kbsync remove command."""

from __future__ import annotations

from typer.testing import CliRunner

from kbsync.cli.main import app
from kbsync.db.models import RowFilter, RowMetadata, VectorRow

runner = CliRunner()


def _add_rows(store, filename, n=2):
    meta = RowMetadata(client_id="acme", filename=filename)
    store.insert_rows(
        [VectorRow(content=f"c{i}", embedding=[1.0, 1.0, 1.0], client_id="acme", metadata=meta) for i in range(n)]
    )


def test_remove_file_and_rows(project, project_objects, project_store):
    project_objects.upload("acme/faq.txt", b"x")
    _add_rows(project_store, "faq.txt")
    result = runner.invoke(app, ["remove", "-c", "acme", "-f", "faq.txt", "--yes"])
    assert result.exit_code == 0, result.output
    assert "2 rows deleted" in result.output
    assert project_objects.list("acme") == []
    assert project_store.count_where(RowFilter("acme")) == 0


def test_remove_keep_file(project, project_objects, project_store):
    project_objects.upload("acme/faq.txt", b"x")
    _add_rows(project_store, "faq.txt")
    result = runner.invoke(app, ["remove", "-c", "acme", "-f", "faq.txt", "--keep-file", "--yes"])
    assert result.exit_code == 0, result.output
    assert [f.name for f in project_objects.list("acme")] == ["faq.txt"]
    assert project_store.count_where(RowFilter("acme")) == 0


def test_remove_encoded_legacy_rows(project, project_store):
    _add_rows(project_store, "price%20list.pdf", 3)
    result = runner.invoke(app, ["remove", "-c", "acme", "-f", "price list.pdf", "-y"])
    assert result.exit_code == 0, result.output
    assert "3 rows deleted" in result.output


def test_remove_cancelled(project, project_objects, project_store):
    project_objects.upload("acme/faq.txt", b"x")
    _add_rows(project_store, "faq.txt")
    result = runner.invoke(app, ["remove", "-c", "acme", "-f", "faq.txt"], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert project_store.count_where(RowFilter("acme")) == 2


def test_remove_invalid_name(project):
    result = runner.invoke(app, ["remove", "-c", "acme", "-f", "a/b.txt", "-y"])
    assert result.exit_code == 1
    assert "single path segments" in result.output
