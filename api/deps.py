"""
Dependency injection for the shared StreamScout context.
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from streamscout.context import AppContext
from streamscout.enrichment import MovieEnricher
from streamscout.health import HealthChecker

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    """
    Returns the context built in the app lifespan.
    """
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        logger.error("StreamScout context is not initialized")
        raise HTTPException(status_code=503, detail="Service is starting up")
    return ctx


def get_enricher(ctx: Annotated[AppContext, Depends(get_context)]) -> MovieEnricher:
    return ctx.enricher


def get_health_checker(ctx: Annotated[AppContext, Depends(get_context)]) -> HealthChecker:
    return ctx.health


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


# Type aliases for dependency injection
Enricher = Annotated[MovieEnricher, Depends(get_enricher)]
Health = Annotated[HealthChecker, Depends(get_health_checker)]
RequestId = Annotated[str, Depends(get_request_id)]
