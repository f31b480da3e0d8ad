"""
Dependency health checks.

Each upstream gets one cheap request with a short timeout. TMDb is critical,
so TMDb down means the service is unhealthy; OMDb or streaming down only
degrades it. The aggregate is cached whole; once stale, the next call probes
all three again before answering.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

import requests

from streamscout import __version__
from streamscout.integrations.http import UpstreamError, send_get
from streamscout.integrations.omdb import OmdbClient
from streamscout.integrations.streaming import StreamingClient
from streamscout.integrations.tmdb import TmdbClient
from streamscout.log_context import redact_url
from streamscout.models.health import AggregateHealth, DependencyHealth, HealthStatus

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_TIMEOUT_SECONDS = 5.0
DEFAULT_HEALTH_CACHE_TTL_SECONDS = 60.0

# The Matrix: a title every upstream knows.
PROBE_IMDB_ID = "tt0133093"
PROBE_TMDB_ID = 603

# The streaming subscription tier answers these for a reachable service.
STREAMING_TIER_STATUSES = frozenset({403, 404})

DOWN = DependencyHealth(status="down")


def aggregate_status(tmdb: DependencyHealth, omdb: DependencyHealth, streaming: DependencyHealth) -> HealthStatus:
    if tmdb.status == "down":
        return "unhealthy"
    if omdb.status == "down" or streaming.status == "down":
        return "degraded"
    return "healthy"


def _now_utc_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


def _omdb_has_data(resp: requests.Response) -> bool:
    if not _is_success(resp):
        return False
    try:
        payload = resp.json()
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("Response") != "False"


def _streaming_reachable(resp: requests.Response) -> bool:
    return _is_success(resp) or resp.status_code in STREAMING_TIER_STATUSES


class HealthChecker:
    def __init__(
        self,
        tmdb: TmdbClient,
        omdb: OmdbClient,
        streaming: StreamingClient,
        *,
        timeout_seconds: float = DEFAULT_HEALTH_TIMEOUT_SECONDS,
        cache_ttl_seconds: float = DEFAULT_HEALTH_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        version: str = __version__,
    ) -> None:
        self._tmdb = tmdb
        self._omdb = omdb
        self._streaming = streaming
        self._timeout = timeout_seconds
        self._cache_ttl = cache_ttl_seconds
        self._clock = clock
        self._version = version
        self._cached: tuple[AggregateHealth, float] | None = None

    async def check(self) -> AggregateHealth:
        now = self._clock()
        if self._cached is not None:
            result, checked_at = self._cached
            if now - checked_at < self._cache_ttl:
                return result

        try:
            result = await self._probe_all()
        except Exception:
            logger.exception("Health check error")
            return AggregateHealth(
                status="unhealthy",
                version=self._version,
                dependencies={"tmdb": DOWN, "omdb": DOWN, "streaming": DOWN},
                timestamp=_now_utc_iso(),
            )

        self._cached = (result, now)
        if result.status != "healthy":
            logger.warning(
                f"Health status {result.status}",
                extra={"dependencies": {k: v.status for k, v in result.dependencies.items()}},
            )
        return result

    def invalidate(self) -> None:
        self._cached = None

    async def _probe_all(self) -> AggregateHealth:
        tmdb, omdb, streaming = await asyncio.gather(
            self.check_tmdb(),
            self.check_omdb(),
            self.check_streaming(),
        )
        return AggregateHealth(
            status=aggregate_status(tmdb, omdb, streaming),
            version=self._version,
            dependencies={"tmdb": tmdb, "omdb": omdb, "streaming": streaming},
            timestamp=_now_utc_iso(),
        )

    async def check_tmdb(self) -> DependencyHealth:
        return await self._probe(
            "tmdb",
            self._tmdb.session,
            f"{self._tmdb.base_url}/configuration",
            headers=self._tmdb.auth_headers(),
            accept=_is_success,
        )

    async def check_omdb(self) -> DependencyHealth:
        if not self._omdb.enabled:
            return DOWN
        return await self._probe(
            "omdb",
            self._omdb.session,
            self._omdb.base_url,
            params={**self._omdb.auth_params(), "i": PROBE_IMDB_ID, "plot": "short"},
            accept=_omdb_has_data,
        )

    async def check_streaming(self) -> DependencyHealth:
        if not self._streaming.enabled:
            return DOWN
        return await self._probe(
            "streaming",
            self._streaming.session,
            f"{self._streaming.base_url}/get",
            params=self._streaming.title_params(PROBE_TMDB_ID),
            headers=self._streaming.auth_headers(),
            accept=_streaming_reachable,
        )

    async def _probe(
        self,
        upstream: str,
        session: requests.Session,
        url: str,
        *,
        accept: Callable[[requests.Response], bool],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> DependencyHealth:
        start = time.perf_counter()
        try:
            resp = await asyncio.wait_for(
                asyncio.to_thread(
                    send_get,
                    session,
                    url,
                    upstream=upstream,
                    params=params,
                    headers=headers,
                    timeout_seconds=self._timeout,
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.error(f"{upstream} health check timed out after {self._timeout:g}s")
            return DOWN
        except UpstreamError as exc:
            logger.error(f"{upstream} health check failed: {exc}")
            return DOWN

        latency_ms = int((time.perf_counter() - start) * 1000)
        if accept(resp):
            return DependencyHealth(status="up", latency_ms=latency_ms)
        logger.error(f"{upstream} health check got HTTP {resp.status_code} from {redact_url(url)}")
        return DOWN
