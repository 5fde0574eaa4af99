"""
FastAPI application: REST adapter for the toolchat service.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from domain.exceptions import DomainError, SessionNotFoundError, ValidationError
from infrastructure.config import APP_VERSION, Settings
from factory import ServiceFactory
from adapters.rest.dependencies import set_factory
from adapters.rest.routers import chat, sessions, tools

logger = logging.getLogger(__name__)


def create_app(factory: Optional[ServiceFactory] = None) -> FastAPI:
    """Build the FastAPI app.

    Without a factory, one is built from the environment at startup.
    Tests pass their own (temp database, fake model).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize ServiceFactory on startup, drain turns on shutdown."""
        active = factory
        if active is None:
            config = Settings.from_env(project_root=_src_dir.parent)
            logging.basicConfig(
                level=config.log_level.upper(),
                format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            )
            active = ServiceFactory(config)
        await active.initialize()
        set_factory(active)
        yield
        await active.shutdown()
        set_factory(None)

    app = FastAPI(
        title="toolchat",
        version=APP_VERSION,
        description="Streaming tool-calling chat agent with persistent sessions.",
        lifespan=lifespan,
    )

    # CORS: permissive for development; tighten allowed_origins in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat.router)
    app.include_router(sessions.router)
    app.include_router(tools.router)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "detail": _summarize(exc)},
        )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "detail": str(exc)},
        )

    @app.exception_handler(SessionNotFoundError)
    async def _not_found(request: Request, exc: SessionNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "detail": str(exc)},
        )

    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError):
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "response": "The request could not be processed."},
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "response": "The request could not be processed."},
        )

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": APP_VERSION}

    return app


def _summarize(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location or 'body'}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


app = create_app()
