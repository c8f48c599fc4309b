"""Tests for the kbsync status command."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from typer.testing import CliRunner

from kbsync.cli.main import app

runner = CliRunner()


def test_status_empty_client(project):
    result = runner.invoke(app, ["status", "--client", "acme"])
    assert result.exit_code == 0, result.output
    assert "No files stored" in result.output


def test_status_after_ingest(project, project_objects, fake_litellm):
    project_objects.upload("acme/faq.txt", b"Trained content.")
    project_objects.upload("acme/new.txt", b"Never ingested.")
    runner.invoke(app, ["ingest", "-c", "acme", "-f", "faq.txt"])

    result = runner.invoke(app, ["status", "--client", "acme"])

    assert result.exit_code == 0, result.output
    assert "faq.txt" in result.output
    assert "new.txt" in result.output
    assert "1/2 trained" in result.output
    assert "NOT TRAINED" in result.output


def test_status_stale_after_reupload(project, project_objects, fake_litellm):
    project_objects.upload("acme/faq.txt", b"Version one.")
    runner.invoke(app, ["ingest", "-c", "acme", "-f", "faq.txt"])
    later = (datetime.now(timezone.utc) + timedelta(minutes=10)).timestamp()
    os.utime(project / "kb" / "acme" / "faq.txt", (later, later))

    result = runner.invoke(app, ["status", "--client", "acme"])

    assert "0/1 trained" in result.output


def test_status_invalid_client(project):
    result = runner.invoke(app, ["status", "--client", ".."])
    assert result.exit_code == 1
