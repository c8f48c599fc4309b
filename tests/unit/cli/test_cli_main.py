"""Tests for the kbsync CLI entry point."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from kbsync.cli.main import app

runner = CliRunner()


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("kbsync ")


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "kbsync" in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("upload", "ingest", "status", "remove", "purge", "reap", "serve"):
        assert command in result.output


def test_serve_uses_config(project):
    with patch("kbsync.cli.serve.uvicorn.run") as mock_run:
        result = runner.invoke(app, ["serve", "--port", "9100"])
    assert result.exit_code == 0, result.output
    kwargs = mock_run.call_args.kwargs
    assert kwargs["port"] == 9100
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["log_config"] is None


@pytest.fixture
def kbsync_logger(monkeypatch):
    monkeypatch.delenv("KBSYNC_LOG_LEVEL", raising=False)
    logger = logging.getLogger("kbsync")
    level = logger.level
    yield logger
    logger.setLevel(level)


def _set_config_log_level(project, level):
    cfg_path = project / "kbsync.yaml"
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    data["logging"] = {"level": level}
    cfg_path.write_text(yaml.dump(data), encoding="utf-8")


def test_log_level_from_config(project, kbsync_logger):
    _set_config_log_level(project, "ERROR")
    result = runner.invoke(app, ["status", "--client", "acme"])
    assert result.exit_code == 0, result.output
    assert kbsync_logger.level == logging.ERROR


def test_log_level_flag_beats_config(project, kbsync_logger):
    _set_config_log_level(project, "ERROR")
    result = runner.invoke(app, ["--log-level", "DEBUG", "status", "--client", "acme"])
    assert result.exit_code == 0, result.output
    assert kbsync_logger.level == logging.DEBUG
