"""Token buckets: one guarding calls to the remote AI endpoint, per-client ones for inbound requests."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class TokenBucket:
    """Refills ``rate`` tokens per second up to ``capacity``; ``acquire`` waits for one.

    Clock and sleep are injectable so tests can drive time by hand. The bucket
    is passed explicitly to whoever needs it: share one instance to share a
    limit, or create separate ones to isolate them.
    """

    def __init__(self, rate: float, capacity: int, *, clock: Clock = time.monotonic, sleep: Sleep = asyncio.sleep):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()

    @classmethod
    def per_minute(cls, requests_per_minute: float, burst: int, **kwargs) -> "TokenBucket":
        return cls(requests_per_minute / 60.0, burst, **kwargs)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def try_acquire(self) -> bool:
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    async def acquire(self) -> None:
        while not self.try_acquire():
            wait = (1 - self._tokens) / self.rate
            logger.debug(f"Rate limit bucket empty, waiting {wait:.2f}s")
            await self._sleep(wait)


class ClientRateLimiter:
    """Per-client token buckets for inbound requests: ``max_requests`` per ``window_seconds``."""

    def __init__(self, max_requests: int, window_seconds: float, *, clock: Clock = time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}

    def allow(self, client_id: str) -> bool:
        bucket = self._buckets.get(client_id)
        if bucket is None:
            bucket = TokenBucket(self.max_requests / self.window_seconds, self.max_requests, clock=self._clock)
            self._buckets[client_id] = bucket
        return bucket.try_acquire()

    def reset(self) -> None:
        self._buckets.clear()
