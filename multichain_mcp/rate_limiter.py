"""Very lightweight in-memory rate limiter (per-process, best-effort)."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional


class TokenBucket:
    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.timestamp = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, amount: float = 1.0) -> bool:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.timestamp
            self.timestamp = now
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            if self.tokens >= amount:
                self.tokens -= amount
                return True
            return False


class RateLimiter:
    def __init__(self, rate_per_sec: float, burst: float | None = None) -> None:
        burst = burst if burst is not None else max(rate_per_sec, 1.0)
        self.bucket = TokenBucket(rate_per_sec, burst)

    async def allow(self) -> bool:
        return await self.bucket.consume()


class PerKeyRateLimiter:
    """
    One token bucket per tool name, with optional per-tool rates.

    Buckets are created on first use without a shared lock, so calls for
    different tools never wait on each other.
    """

    def __init__(
        self,
        rate_per_sec: float,
        burst: float | None = None,
        *,
        per_tool: Optional[Dict[str, float]] = None,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = burst
        self.per_tool = dict(per_tool or {})
        self._limiters: Dict[str, RateLimiter] = {}

    def _limiter(self, key: str) -> RateLimiter:
        limiter = self._limiters.get(key)
        if limiter is None:
            rate = self.per_tool.get(key, self.rate)
            burst = self.burst if key not in self.per_tool else None
            limiter = self._limiters.setdefault(key, RateLimiter(rate, burst))
        return limiter

    async def allow(self, key: str) -> bool:
        return await self._limiter(key).allow()
