"""Token bucket rate limiter for outbound API calls.

Example:
    >>> limiter = RateLimiter(requests_per_second=1.0, burst_size=5)
    >>> async with limiter:
    ...     response = await client.get("/repos/serverless/serverless")
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional


class RateLimiter:
    """Async token bucket.

    Tokens refill continuously at ``requests_per_second`` up to ``burst_size``.
    ``acquire`` waits until a token is available. The context manager form
    takes a token on entry and never returns it.
    """

    def __init__(self, requests_per_second: float = 10.0, burst_size: Optional[int] = None):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.requests_per_second = requests_per_second
        self.burst_size = burst_size if burst_size is not None else max(1, int(requests_per_second))
        self._tokens = float(self.burst_size)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _add_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(float(self.burst_size), self._tokens + elapsed * self.requests_per_second)
        self._last_refill = now

    @property
    def available_tokens(self) -> float:
        self._add_tokens()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        async with self._lock:
            self._add_tokens()
            if self._tokens < 1:
                await asyncio.sleep((1 - self._tokens) / self.requests_per_second)
                self._add_tokens()
            self._tokens -= 1

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None
