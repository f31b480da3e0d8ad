"""
StreamScout API - FastAPI application.

Provides endpoints for:
- Searching movies (TMDb)
- Enriching a movie with ratings (OMDb) and streaming availability
- Aggregate dependency health
"""
from __future__ import annotations

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import health, movies
from streamscout import __version__
from streamscout.config import get_cors_origins, get_settings
from streamscout.context import AppContext, build_context
from streamscout.log_context import (
    bind_request_id,
    configure_logging,
    log_request,
    new_request_id,
    reset_request_id,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def _resolve_request_id(request: Request) -> str:
    inbound = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if _INBOUND_REQUEST_ID_RE.match(inbound):
        return inbound
    return new_request_id()


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the app. When `context` is None it is built from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        owned: AppContext | None = None
        if getattr(app.state, "context", None) is None:
            settings = get_settings()
            configure_logging(settings.log_level, settings.log_format)
            logger.info("Starting up StreamScout API...")
            owned = build_context(settings)
            app.state.context = owned
        yield
        logger.info("Shutting down StreamScout API...")
        if owned is not None:
            owned.close()
            app.state.context = None

    app = FastAPI(
        title="StreamScout API",
        description="Movie search enriched with ratings and streaming availability",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # CORS configuration
    # If no origins configured, allows all origins but disables credentials (safer default)
    cors_origins = get_cors_origins()
    allow_credentials = len(cors_origins) > 0  # Only allow credentials with explicit origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins else ["*"],
        allow_credentials=allow_credentials,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = _resolve_request_id(request)
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error on {request.method} {request.url.path}")
                response = JSONResponse(
                    status_code=500,
                    content={"error": "Internal server error", "requestId": request_id},
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            log_request(request.method, request.url.path, response.status_code, (time.perf_counter() - start) * 1000)
            return response
        finally:
            reset_request_id(token)

    app.include_router(movies.router, prefix="/api")
    app.include_router(health.router, prefix="/api")

    @app.get("/")
    def root():
        """Liveness endpoint (no upstream calls)."""
        return {"status": "ok", "service": "streamscout"}

    return app


app = create_app()
