"""Tests for outbound call pacing."""

import asyncio
import time

import pytest

from sync_connector.performance import AsyncRateLimiter


class TestAsyncRateLimiter:
    """Test the sliding-window rate limiter."""

    def test_rejects_empty_budget(self):
        with pytest.raises(ValueError):
            AsyncRateLimiter(0)

    @pytest.mark.asyncio
    async def test_calls_within_budget_do_not_wait(self):
        limiter = AsyncRateLimiter(max_calls=5, time_window=1.0)

        start_time = time.monotonic()
        for _ in range(5):
            await limiter.acquire()

        assert time.monotonic() - start_time < 0.1
        assert len(limiter.calls) == 5

    @pytest.mark.asyncio
    async def test_excess_calls_wait_for_window(self):
        limiter = AsyncRateLimiter(max_calls=2, time_window=0.2)

        start_time = time.monotonic()
        for _ in range(3):
            async with limiter.limit():
                pass

        assert time.monotonic() - start_time >= 0.18

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_budget(self):
        limiter = AsyncRateLimiter(max_calls=3, time_window=0.2)
        started = []

        async def call(index):
            async with limiter.limit():
                started.append((index, time.monotonic()))

        start_time = time.monotonic()
        await asyncio.gather(*[call(i) for i in range(6)])

        assert len(started) == 6
        late = [t for _, t in started if t - start_time >= 0.18]
        assert len(late) == 3
