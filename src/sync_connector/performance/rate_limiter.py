"""Sliding-window rate limiting for outbound backend calls."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import List

from ..utils.logging import get_logger


class AsyncRateLimiter:
    """Rate limiter for async operations."""

    def __init__(self, max_calls: int, time_window: float = 1.0):
        """Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls in the time window
            time_window: Time window in seconds
        """
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")

        self.max_calls = max_calls
        self.time_window = time_window
        self.calls: List[float] = []
        self.lock = asyncio.Lock()

        self.logger = get_logger(self.__class__.__name__)

    async def acquire(self):
        """Wait until a call is allowed, then record it."""
        async with self.lock:
            while True:
                now = time.monotonic()
                self.calls = [t for t in self.calls if now - t < self.time_window]

                if len(self.calls) < self.max_calls:
                    self.calls.append(now)
                    return

                wait_time = self.time_window - (now - self.calls[0])
                self.logger.debug("Rate limit reached, waiting", wait_seconds=round(wait_time, 3))
                await asyncio.sleep(wait_time)

    @asynccontextmanager
    async def limit(self):
        """Context manager for rate limiting."""
        await self.acquire()
        yield
