"""
Token bucket rate limiting for outbound upstream calls.

Each upstream gets its own bucket:
- tokens refill at `refill_rate` per whole `refill_interval_ms` elapsed
- each call consumes one token
- callers that find the bucket empty wait in a FIFO queue
- capacity is a hard ceiling; excess refill is discarded

Buckets live for the process lifetime and are not shared across processes.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from streamscout.config import RateLimiterConfig, Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimiterState:
    available_tokens: int
    pending_count: int


class TokenBucket:
    def __init__(
        self,
        config: RateLimiterConfig,
        *,
        name: str = "upstream",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._config = config
        self._interval = config.refill_interval_seconds
        self._clock = clock
        self._tokens = config.max_tokens
        self._last_refill = clock()
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def config(self) -> RateLimiterConfig:
        return self._config

    def _refill(self) -> None:
        elapsed = self._clock() - self._last_refill
        intervals = int(elapsed // self._interval)
        if intervals <= 0:
            return
        self._tokens = min(self._config.max_tokens, self._tokens + intervals * self._config.refill_rate)
        # Advance by whole intervals only; the partial interval carries over.
        self._last_refill += intervals * self._interval

    def _pending(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    async def acquire(self) -> None:
        """Wait for a token. Returns immediately while tokens remain and nobody is queued."""
        self._refill()
        if self._tokens > 0 and not self._pending():
            self._tokens -= 1
            return

        loop = asyncio.get_running_loop()
        fut: asyncio.Future[None] = loop.create_future()
        self._waiters.append(fut)
        logger.debug(f"Rate limiter {self.name} queued a caller ({self._pending()} pending)")
        self._schedule_drain(loop)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Granted but abandoned: hand the token to the next waiter.
                self._tokens = min(self._config.max_tokens, self._tokens + 1)
                self._drain()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            raise

    def _schedule_drain(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if self._timer is not None or not self._waiters:
            return
        loop = loop or asyncio.get_running_loop()
        until_next = self._interval - (self._clock() - self._last_refill)
        self._timer = loop.call_later(max(0.0, until_next), self._drain)

    def _drain(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._refill()
        while self._waiters and self._tokens > 0:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._tokens -= 1
            fut.set_result(None)
        while self._waiters and self._waiters[0].done():
            self._waiters.popleft()
        if self._waiters:
            self._schedule_drain()

    def get_state(self) -> RateLimiterState:
        self._refill()
        return RateLimiterState(available_tokens=self._tokens, pending_count=self._pending())


class RateLimiters:
    """One independent bucket per upstream, built from settings at startup."""

    def __init__(self, tmdb: TokenBucket, omdb: TokenBucket, streaming: TokenBucket) -> None:
        self.tmdb = tmdb
        self.omdb = omdb
        self.streaming = streaming

    @classmethod
    def from_settings(cls, settings: Settings) -> RateLimiters:
        return cls(
            tmdb=TokenBucket(settings.tmdb_rate_limit, name="tmdb"),
            omdb=TokenBucket(settings.omdb_rate_limit, name="omdb"),
            streaming=TokenBucket(settings.streaming_rate_limit, name="streaming"),
        )

    def get_state(self) -> dict[str, RateLimiterState]:
        return {
            "tmdb": self.tmdb.get_state(),
            "omdb": self.omdb.get_state(),
            "streaming": self.streaming.get_state(),
        }
