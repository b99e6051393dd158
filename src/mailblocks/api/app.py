"""
Application factory for the mailblocks editing API.

`create_app()` wires three things onto a fresh FastAPI instance:

- permissive CORS, so a browser editor on another origin can call it;
- JSON error bodies for the exceptions the editing layer raises;
- the `/documents` router and a `/health` probe.

Tests call the factory once per test after pointing `EditorSessions` at a
temporary repository.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mailblocks import __version__
from mailblocks.api.routers import documents
from mailblocks.api.sessions import EditorSessions
from mailblocks.core.settings import get_logger, load_settings
from mailblocks.core.store.storage import DocumentStorageError

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the session registry on startup; forget open documents on shutdown."""
    logger.info("mailblocks API starting (env=%s)", load_settings().environment)
    sessions = EditorSessions.get_instance()
    yield
    sessions.clear()
    logger.info("mailblocks API stopped")


def _error_body(status_code: int, error: str, detail: Any, path: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error, "detail": detail}
    if path is not None:
        content["path"] = path
    return JSONResponse(status_code=status_code, content=content)


def _register_error_handlers(app: FastAPI) -> None:
    """Map editing-layer exceptions to status codes.

    ``ValueError`` means the request cannot apply to the document (400).
    ``DocumentStorageError`` means the file behind a template is unusable
    (500). Anything else is logged with its traceback and reported as 500.
    Request-body validation keeps FastAPI's own 422 handler.
    """

    @app.exception_handler(ValueError)
    async def on_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return _error_body(400, "Bad Request", str(exc))

    @app.exception_handler(DocumentStorageError)
    async def on_storage_error(request: Request, exc: DocumentStorageError) -> JSONResponse:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return _error_body(500, "Document Storage Error", exc.reason, request.url.path)

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return _error_body(500, "Internal Server Error", str(exc), request.url.path)


def create_app() -> FastAPI:
    """Build a configured ASGI application."""
    app = FastAPI(
        title="mailblocks API",
        description="Block-tree editing for email templates",
        version=__version__,
        lifespan=lifespan,
    )
    # TODO: read allowed origins from settings once the hosted editor has a fixed domain.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    app.include_router(documents.router)

    @app.get("/health", tags=["System"])
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app", "lifespan"]
