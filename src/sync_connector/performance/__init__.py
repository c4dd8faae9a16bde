"""Performance helpers for pacing backend calls."""

from .rate_limiter import AsyncRateLimiter

__all__ = [
    "AsyncRateLimiter",
]
