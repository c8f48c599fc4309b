"""Shared pytest fixtures."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import yaml

from kbsync.config import EmbeddingCfg, KbSyncConfig
from kbsync.db.connection import Database
from kbsync.db.migrations import initialize
from kbsync.db.repository import VectorStore
from kbsync.storage.object_store import LocalObjectStore

MODEL = "openai/text-embedding-3-small"
DIMS = 3


def fake_embedding_response(texts: list[str]) -> MagicMock:
    """Mimic a litellm EmbeddingResponse: one 3-d vector per input, in order."""
    response = MagicMock()
    response.data = [
        {"index": i, "embedding": [float(len(t)), float(i), 1.0]} for i, t in enumerate(texts)
    ]
    return response


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".kbsync.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    return VectorStore(tmp_db, MODEL, DIMS)


@pytest.fixture
def objects(tmp_path):
    return LocalObjectStore(tmp_path / "knowledge_base")


@pytest.fixture
def config(tmp_path):
    cfg = KbSyncConfig()
    cfg.embedding = EmbeddingCfg(model=MODEL, dimensions=DIMS, batch_size=20)
    cfg.storage.db_path = str(tmp_path / ".kbsync.db")
    cfg.storage.root = str(tmp_path / "knowledge_base")
    return cfg


@pytest.fixture
def fake_litellm(monkeypatch):
    """Patch litellm.embedding with a deterministic fake; yields the mock."""
    monkeypatch.setenv("OPENAI_API_KEY", "fake-key")
    with patch(
        "kbsync.ingest.embedding_client.litellm.embedding",
        side_effect=lambda model, input, **kwargs: fake_embedding_response(input),
    ) as mock:
        yield mock


# ------------------------------------------------------------------
# CLI project directory
# ------------------------------------------------------------------


@pytest.fixture
def project(tmp_path, monkeypatch):
    """cwd = tmp_path with a kbsync.yaml pointing at tmp stores and 3-d embeddings."""
    for name in ("KBSYNC_DB", "KBSYNC_STORAGE_ROOT", "KBSYNC_EMBEDDING_MODEL", "KBSYNC_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("kbsync.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.chdir(tmp_path)
    (tmp_path / "kbsync.yaml").write_text(
        yaml.dump(
            {
                "storage": {"db_path": str(tmp_path / ".kbsync.db"), "root": str(tmp_path / "kb")},
                "embedding": {"model": MODEL, "dimensions": DIMS},
            }
        ),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def project_objects(project):
    return LocalObjectStore(project / "kb")


@pytest.fixture
def project_store(project):
    """VectorStore on the project DB; closed after the test."""
    conn = Database(project / ".kbsync.db").connect()
    initialize(conn)
    yield VectorStore(conn, MODEL, DIMS)
    conn.close()
