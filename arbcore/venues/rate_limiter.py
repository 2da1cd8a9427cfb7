"""Per-venue async rate limiting for quote requests."""

from __future__ import annotations

import asyncio
import time

from arbcore.core.types import Venue


class TokenBucket:
    """Token bucket refilling at ``rate`` tokens per second up to ``capacity``."""

    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self._last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self._last_refill) * self.rate)
        self._last_refill = now

    def try_acquire(self) -> bool:
        self._refill()
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def refund(self) -> None:
        self.tokens = min(self.capacity, self.tokens + 1.0)

    def wait_time(self) -> float:
        self._refill()
        if self.tokens >= 1.0:
            return 0.0
        return (1.0 - self.tokens) / self.rate


class VenueRateLimiter:
    """Burst + sustained buckets kept separately for every venue.

    A request to one venue never waits on another venue's budget.
    """

    def __init__(self, burst_per_sec: int = 20, sustained_per_sec: int = 10) -> None:
        self._burst_per_sec = float(burst_per_sec)
        self._sustained_per_sec = float(sustained_per_sec)
        self._buckets: dict[Venue, tuple[TokenBucket, TokenBucket]] = {}

    def _buckets_for(self, venue: Venue) -> tuple[TokenBucket, TokenBucket]:
        buckets = self._buckets.get(venue)
        if buckets is None:
            buckets = (
                TokenBucket(self._burst_per_sec, self._burst_per_sec),
                TokenBucket(self._sustained_per_sec, self._sustained_per_sec),
            )
            self._buckets[venue] = buckets
        return buckets

    async def acquire(self, venue: Venue) -> None:
        """Wait until ``venue`` has budget in both buckets, then spend it."""
        burst, sustained = self._buckets_for(venue)
        while True:
            if burst.try_acquire():
                if sustained.try_acquire():
                    return
                burst.refund()
            await asyncio.sleep(max(burst.wait_time(), sustained.wait_time(), 0.001))
