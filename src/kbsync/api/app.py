"""HTTP surface: training trigger, knowledge-base status and deletion.

All routes except ``/health`` require ``Authorization: Bearer <token>``
matching the ``KBSYNC_API_TOKEN`` environment variable.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from kbsync.config import KbSyncConfig
from kbsync.exceptions import (
    AuthError,
    ConfigurationError,
    StorageError,
    ValidationError,
)
from kbsync.log import configure_logging
from kbsync.runtime import Runtime, open_runtime

logger = logging.getLogger(__name__)

TOKEN_ENV = "KBSYNC_API_TOKEN"


class TrainRequest(BaseModel):
    clientId: str = ""
    fileNames: list[str] = Field(default_factory=list)


# ------------------------------------------------------------------
# Auth
# ------------------------------------------------------------------


def require_token(request: Request) -> None:
    """Reject the request unless it carries the configured bearer token."""
    expected = os.environ.get(TOKEN_ENV)
    if not expected:
        logger.warning("%s is not set; rejecting all authenticated requests", TOKEN_ENV)
        raise AuthError("API token not configured")
    scheme, _, supplied = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(supplied.strip(), expected):
        raise AuthError("Unauthorized")


# ------------------------------------------------------------------
# App factory
# ------------------------------------------------------------------


def create_app(config: KbSyncConfig | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config:  Configuration used to open the runtime at startup.
        runtime: Pre-built runtime (tests); it is not closed on shutdown.
    """
    cfg = config or (runtime.config if runtime else KbSyncConfig())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.logging.level)
        owned = runtime is None
        app.state.runtime = runtime or open_runtime(cfg)
        logger.info("kbsync API started | db=%s root=%s", cfg.storage.db_path, cfg.storage.root)
        yield
        if owned:
            app.state.runtime.close()
        logger.info("kbsync API stopped")

    app = FastAPI(title="kbsync", version="1.0", lifespan=lifespan)
    _install_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/train", dependencies=[Depends(require_token)])
    async def train(request: Request):
        body = await request.body()
        if not body.strip():
            raise ValidationError("Empty request body")
        try:
            payload = TrainRequest.model_validate(json.loads(body))
        except (json.JSONDecodeError, PydanticValidationError) as exc:
            raise ValidationError(f"Invalid request body: {exc}") from exc

        logger.info("Train request | client_id=%s files=%s", payload.clientId, payload.fileNames)
        rt: Runtime = request.app.state.runtime
        result = await run_in_threadpool(rt.orchestrator().ingest, payload.clientId, payload.fileNames)
        status_code = 200 if result.success else 500
        return JSONResponse(result.to_response(), status_code=status_code)

    @app.get("/api/clients/{client_id}/kb-status", dependencies=[Depends(require_token)])
    async def kb_status(client_id: str, request: Request):
        rt: Runtime = request.app.state.runtime
        statuses = await run_in_threadpool(rt.reconciler().status, client_id)
        return [s.to_dict() for s in statuses]

    @app.delete("/api/clients/{client_id}/kb/{file_name}", dependencies=[Depends(require_token)])
    async def delete_kb_file(client_id: str, file_name: str, request: Request, keepFile: bool = False):
        rt: Runtime = request.app.state.runtime
        sync = rt.deletion()
        op = sync.delete_embeddings if keepFile else sync.delete_file
        deleted = await run_in_threadpool(op, client_id, file_name)
        return {"success": True, "deleted": deleted}

    @app.delete("/api/clients/{client_id}", dependencies=[Depends(require_token)])
    async def purge_client(client_id: str, request: Request):
        rt: Runtime = request.app.state.runtime
        report = await run_in_threadpool(rt.deletion().purge_client, client_id)
        return JSONResponse(report.to_response(), status_code=200 if not report.errors else 500)

    return app


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(AuthError)
    async def _auth(request: Request, exc: AuthError):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @app.exception_handler(ConfigurationError)
    async def _config(request: Request, exc: ConfigurationError):
        logger.error("Configuration error: %s", exc)
        return JSONResponse({"error": "Server configuration error"}, status_code=500)

    @app.exception_handler(StorageError)
    async def _storage(request: Request, exc: StorageError):
        logger.error("Storage error: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=502)
