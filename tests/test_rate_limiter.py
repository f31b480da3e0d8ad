from __future__ import annotations

import asyncio
import time

import pytest

from streamscout.config import RateLimiterConfig, Settings
from streamscout.rate_limiter import RateLimiters, TokenBucket


def run_async(coro):
    """Helper to run async code in sync tests."""
    return asyncio.run(coro)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRefillAccounting:
    def test_starts_full(self) -> None:
        bucket = TokenBucket(RateLimiterConfig(5, 1, 1000), clock=FakeClock())
        state = bucket.get_state()
        assert state.available_tokens == 5
        assert state.pending_count == 0

    def test_refill_is_whole_intervals_and_capped(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(RateLimiterConfig(max_tokens=3, refill_rate=2, refill_interval_ms=1000), clock=clock)

        async def drain() -> None:
            for _ in range(3):
                await bucket.acquire()

        run_async(drain())
        assert bucket.get_state().available_tokens == 0

        clock.now = 0.999
        assert bucket.get_state().available_tokens == 0

        clock.now = 1.0
        assert bucket.get_state().available_tokens == 2

        # Partial interval is not lost and the ceiling holds.
        clock.now = 2.5
        assert bucket.get_state().available_tokens == 3

        clock.now = 100.0
        assert bucket.get_state().available_tokens == 3


class TestAcquire:
    def test_burst_up_to_capacity_is_immediate(self) -> None:
        bucket = TokenBucket(RateLimiterConfig(max_tokens=5, refill_rate=1, refill_interval_ms=10_000))

        async def burst() -> float:
            start = time.perf_counter()
            await asyncio.gather(*(bucket.acquire() for _ in range(5)))
            return time.perf_counter() - start

        elapsed = run_async(burst())
        assert elapsed < 0.5
        assert bucket.get_state().available_tokens == 0

    def test_call_beyond_capacity_waits_for_refill(self) -> None:
        interval_ms = 100
        bucket = TokenBucket(RateLimiterConfig(max_tokens=2, refill_rate=1, refill_interval_ms=interval_ms))

        async def scenario() -> float:
            await bucket.acquire()
            await bucket.acquire()
            start = time.perf_counter()
            await bucket.acquire()
            return time.perf_counter() - start

        waited = run_async(scenario())
        assert waited >= (interval_ms / 1000) * 0.8

    def test_queued_callers_resolve_in_arrival_order(self) -> None:
        bucket = TokenBucket(RateLimiterConfig(max_tokens=1, refill_rate=1, refill_interval_ms=50))
        order: list[int] = []

        async def caller(i: int) -> None:
            await bucket.acquire()
            order.append(i)

        async def scenario() -> None:
            await bucket.acquire()
            tasks = [asyncio.create_task(caller(i)) for i in range(6)]
            await asyncio.sleep(0)
            assert bucket.get_state().pending_count == 6
            await asyncio.gather(*tasks)

        run_async(scenario())
        assert order == [0, 1, 2, 3, 4, 5]
        assert bucket.get_state().pending_count == 0

    def test_tokens_never_exceed_capacity_while_draining(self) -> None:
        bucket = TokenBucket(RateLimiterConfig(max_tokens=2, refill_rate=5, refill_interval_ms=20))
        seen: list[int] = []

        async def caller() -> None:
            await bucket.acquire()
            seen.append(bucket.get_state().available_tokens)

        async def scenario() -> None:
            await asyncio.gather(*(caller() for _ in range(8)))

        run_async(scenario())
        assert all(0 <= tokens <= 2 for tokens in seen)

    def test_cancelled_waiter_leaves_queue(self) -> None:
        bucket = TokenBucket(RateLimiterConfig(max_tokens=1, refill_rate=1, refill_interval_ms=50))
        order: list[str] = []

        async def caller(name: str) -> None:
            await bucket.acquire()
            order.append(name)

        async def scenario() -> None:
            await bucket.acquire()
            first = asyncio.create_task(caller("first"))
            second = asyncio.create_task(caller("second"))
            await asyncio.sleep(0)
            first.cancel()
            with pytest.raises(asyncio.CancelledError):
                await first
            assert bucket.get_state().pending_count == 1
            await second

        run_async(scenario())
        assert order == ["second"]

    def test_buckets_are_independent(self, settings: Settings) -> None:
        limiters = RateLimiters.from_settings(settings)

        async def exhaust_tmdb() -> None:
            for _ in range(settings.tmdb_rate_limit.max_tokens):
                await limiters.tmdb.acquire()
            await asyncio.wait_for(limiters.omdb.acquire(), timeout=0.1)
            await asyncio.wait_for(limiters.streaming.acquire(), timeout=0.1)

        run_async(exhaust_tmdb())
        state = limiters.get_state()
        assert state["tmdb"].available_tokens == 0
        assert state["omdb"].available_tokens == settings.omdb_rate_limit.max_tokens - 1
        assert state["streaming"].available_tokens == settings.streaming_rate_limit.max_tokens - 1
