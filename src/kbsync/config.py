"""kbsync configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (KBSYNC_EMBEDDING_MODEL, KBSYNC_DB, KBSYNC_STORAGE_ROOT,
                             KBSYNC_MAX_WORKERS, KBSYNC_LOG_LEVEL)
  3. Per-project kbsync.yaml  (in the working directory)
  4. Global ~/.kbsync/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Config files must never contain API keys or the HTTP bearer token; use
environment variables instead. All YAML reads use yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kbsync.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".kbsync"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "kbsync.yaml"

# Fields that suggest a credential; forbidden in any config file.
# Does NOT match legitimate config keys like max_tokens or timeout_s.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # api_token, access_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["storage", "embedding", "chunking", "ingest", "status", "deletion", "server", "logging"]
)

_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ConfigurationError, ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StorageCfg:
    """Where source files and the vector database live (kbsync.yaml: storage:)."""

    root: str = "knowledge_base"
    db_path: str = ".kbsync.db"


@dataclass
class EmbeddingCfg:
    """Embedding provider configuration (kbsync.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 20
    num_retries: int = 2
    timeout_s: float = 60.0


@dataclass
class ChunkingCfg:
    """Chunk size and overlap in characters (kbsync.yaml: chunking:)."""

    target_size: int = 1000
    overlap: int = 200


@dataclass
class IngestCfg:
    """Ingestion run behaviour (kbsync.yaml: ingest:).

    Attributes:
        max_workers: Files processed concurrently. 1 keeps the sequential
            reference behaviour.
        time_budget_s: Files not yet started once this many seconds have
            elapsed are skipped. ``None`` disables the budget.
        reset_retries: Extra attempts for the delete-before-insert reset.
        source: Value written to ``metadata.source`` on every row.
    """

    max_workers: int = 1
    time_budget_s: float | None = 300.0
    reset_retries: int = 2
    source: str = "admin-upload"


@dataclass
class StatusCfg:
    """Training status reconciliation (kbsync.yaml: status:)."""

    tolerance_ms: int = 1000


@dataclass
class DeletionCfg:
    """Deletion synchronizer (kbsync.yaml: deletion:)."""

    legacy_encoded_fallback: bool = True


@dataclass
class ServerCfg:
    """HTTP server bind address (kbsync.yaml: server:)."""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class LoggingCfg:
    """Log level (kbsync.yaml: logging:)."""

    level: str = "INFO"


@dataclass
class KbSyncConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    storage: StorageCfg = field(default_factory=StorageCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    status: StatusCfg = field(default_factory=StatusCfg)
    deletion: DeletionCfg = field(default_factory=DeletionCfg)
    server: ServerCfg = field(default_factory=ServerCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: KbSyncConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    if cfg.chunking.target_size < 1:
        raise ConfigError(f"chunking.target_size must be >= 1, got {cfg.chunking.target_size}")
    if cfg.chunking.overlap < 0:
        raise ConfigError(f"chunking.overlap must be >= 0, got {cfg.chunking.overlap}")
    if cfg.embedding.batch_size < 1:
        raise ConfigError(f"embedding.batch_size must be >= 1, got {cfg.embedding.batch_size}")
    if cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    if cfg.ingest.max_workers < 1:
        raise ConfigError(f"ingest.max_workers must be >= 1, got {cfg.ingest.max_workers}")
    if cfg.ingest.reset_retries < 0:
        raise ConfigError(f"ingest.reset_retries must be >= 0, got {cfg.ingest.reset_retries}")
    if cfg.status.tolerance_ms < 0:
        raise ConfigError(f"status.tolerance_ms must be >= 0, got {cfg.status.tolerance_ms}")
    if cfg.logging.level.upper() not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, "
            f"got '{cfg.logging.level}'"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _cfg_from_dict(data: dict[str, Any]) -> KbSyncConfig:
    """Build a *KbSyncConfig* from a merged raw YAML dict."""
    cfg = KbSyncConfig()

    try:
        if "storage" in data:
            s = data["storage"] or {}
            cfg.storage = StorageCfg(
                root=str(s.get("root", cfg.storage.root)),
                db_path=str(s.get("db_path", cfg.storage.db_path)),
            )

        if "embedding" in data:
            e = data["embedding"] or {}
            cfg.embedding = EmbeddingCfg(
                model=str(e.get("model", cfg.embedding.model)),
                dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
                batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
                num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
                timeout_s=float(e.get("timeout_s", cfg.embedding.timeout_s)),
            )

        if "chunking" in data:
            c = data["chunking"] or {}
            cfg.chunking = ChunkingCfg(
                target_size=int(c.get("target_size", cfg.chunking.target_size)),
                overlap=int(c.get("overlap", cfg.chunking.overlap)),
            )

        if "ingest" in data:
            i = data["ingest"] or {}
            cfg.ingest = IngestCfg(
                max_workers=int(i.get("max_workers", cfg.ingest.max_workers)),
                time_budget_s=_optional_float(i.get("time_budget_s", cfg.ingest.time_budget_s)),
                reset_retries=int(i.get("reset_retries", cfg.ingest.reset_retries)),
                source=str(i.get("source", cfg.ingest.source)),
            )

        if "status" in data:
            st = data["status"] or {}
            cfg.status = StatusCfg(
                tolerance_ms=int(st.get("tolerance_ms", cfg.status.tolerance_ms)),
            )

        if "deletion" in data:
            d = data["deletion"] or {}
            cfg.deletion = DeletionCfg(
                legacy_encoded_fallback=bool(
                    d.get("legacy_encoded_fallback", cfg.deletion.legacy_encoded_fallback)
                ),
            )

        if "server" in data:
            sv = data["server"] or {}
            cfg.server = ServerCfg(
                host=str(sv.get("host", cfg.server.host)),
                port=int(sv.get("port", cfg.server.port)),
            )

        if "logging" in data:
            lg = data["logging"] or {}
            cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)).upper())
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: KbSyncConfig) -> KbSyncConfig:
    """Apply KBSYNC_* environment variable overrides (layer 2)."""
    if model := os.environ.get("KBSYNC_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("KBSYNC_DB"):
        cfg.storage.db_path = db_path
    if root := os.environ.get("KBSYNC_STORAGE_ROOT"):
        cfg.storage.root = root
    if workers := os.environ.get("KBSYNC_MAX_WORKERS"):
        try:
            cfg.ingest.max_workers = int(workers)
        except ValueError as exc:
            raise ConfigError(f"KBSYNC_MAX_WORKERS must be an integer, got '{workers}'") from exc
    if level := os.environ.get("KBSYNC_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> KbSyncConfig:
    """Load and return a merged *KbSyncConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *kbsync.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *KbSyncConfig* with env var overrides applied.

    Raises:
        ConfigError: If a config file contains credential-like fields or a
            value the pipeline cannot run with.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
