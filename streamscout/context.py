"""
Process-wide wiring: one cache, one rate limiter per upstream, the three
clients, the enricher and the health checker, all built once at startup.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from streamscout.cache import TTLCache
from streamscout.config import Settings
from streamscout.enrichment import MovieEnricher
from streamscout.health import HealthChecker
from streamscout.integrations.http import new_session
from streamscout.integrations.omdb import OmdbClient
from streamscout.integrations.streaming import StreamingClient
from streamscout.integrations.tmdb import TmdbClient
from streamscout.rate_limiter import RateLimiters

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    cache: TTLCache
    limiters: RateLimiters
    tmdb: TmdbClient
    omdb: OmdbClient
    streaming: StreamingClient
    enricher: MovieEnricher
    health: HealthChecker
    session: requests.Session

    def close(self) -> None:
        self.session.close()


def build_context(settings: Settings, *, session: requests.Session | None = None) -> AppContext:
    """Raises `ConfigurationError` when the TMDb token is missing."""
    tmdb_token = settings.require_catalog_credentials()

    session = session or new_session()
    cache = TTLCache(ttl_seconds=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)
    limiters = RateLimiters.from_settings(settings)
    timeout = settings.upstream_timeout_seconds

    tmdb = TmdbClient(tmdb_token, cache=cache, limiter=limiters.tmdb, session=session, timeout_seconds=timeout)
    omdb = OmdbClient(
        settings.omdb_api_key, cache=cache, limiter=limiters.omdb, session=session, timeout_seconds=timeout
    )
    streaming = StreamingClient(
        settings.streaming_api_key,
        cache=cache,
        limiter=limiters.streaming,
        session=session,
        timeout_seconds=timeout,
    )

    enricher = MovieEnricher(
        tmdb,
        omdb,
        streaming,
        call_timeout_seconds=timeout,
        deadline_seconds=settings.enrich_deadline_seconds,
    )
    health = HealthChecker(
        tmdb,
        omdb,
        streaming,
        timeout_seconds=settings.health_timeout_seconds,
        cache_ttl_seconds=settings.health_cache_ttl_seconds,
    )
    logger.info(
        "StreamScout context ready",
        extra={"omdbEnabled": omdb.enabled, "streamingEnabled": streaming.enabled},
    )
    return AppContext(
        settings=settings,
        cache=cache,
        limiters=limiters,
        tmdb=tmdb,
        omdb=omdb,
        streaming=streaming,
        enricher=enricher,
        health=health,
        session=session,
    )
