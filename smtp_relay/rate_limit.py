"""Per-client sliding-window rate limiting for the relay endpoint.

The limiter keeps a log of hit timestamps per client key inside a
:class:`CounterStore`. A request is allowed while fewer than ``max_requests``
hits fall inside the trailing ``window_seconds``; refused requests are not
recorded, so a client that keeps retrying is released as soon as its oldest
accepted hit leaves the window.

The store is injected so tests get an isolated instance and a deployment
running several workers can plug in a shared backend.

Example:
    Wiring the limiter into a route::

        limiter = RateLimiter(InMemoryCounterStore(), max_requests=20, window_seconds=900)
        decision = await limiter.hit(client_ip)
        if not decision.allowed:
            raise TooManyRequests(decision.reset_after)
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Protocol, Tuple

from .logger import get_logger

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_MAX_REQUESTS = 20

logger = get_logger("SmtpRelay.rate_limit")


class CounterStore(Protocol):
    """Storage contract used by :class:`RateLimiter`."""

    async def hit(self, key: str, window_seconds: float, limit: int) -> Tuple[int, float]:
        """Record a hit for ``key`` unless ``limit`` is already reached.

        Returns:
            Tuple of (count, reset_after):
            - count: hits inside the window, including this one when it was
              recorded; ``limit + 1`` signals a refused hit.
            - reset_after: seconds until the oldest hit leaves the window.
        """
        ...

    async def reset(self, key: str) -> None:
        """Forget every hit recorded for ``key``."""
        ...


class InMemoryCounterStore:
    """Process-local :class:`CounterStore` keeping hit timestamps in deques.

    A single asyncio lock serialises the read-modify-write of each hit so that
    concurrent requests from the same client cannot undercount. Keys whose
    hits have all expired are swept at most once per window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float, window_seconds: float) -> None:
        if now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        stale = [key for key in self._hits if not self._prune(key, now, window_seconds)]
        for key in stale:
            del self._hits[key]

    def _prune(self, key: str, now: float, window_seconds: float) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            hits = self._hits[key] = deque()
        cutoff = now - window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    async def hit(self, key: str, window_seconds: float, limit: int) -> Tuple[int, float]:
        async with self._lock:
            now = self._clock()
            self._sweep(now, window_seconds)
            hits = self._prune(key, now, window_seconds)
            if len(hits) >= limit:
                reset_after = hits[0] + window_seconds - now
                return (limit + 1, reset_after)
            hits.append(now)
            reset_after = hits[0] + window_seconds - now
            return (len(hits), reset_after)

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._hits.pop(key, None)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    def headers(self) -> Dict[str, str]:
        """``RateLimit-*`` response headers describing this decision."""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class RateLimiter:
    """Sliding-window limiter allowing ``max_requests`` per ``window_seconds``.

    Attributes:
        store: Counter backend shared by every request handled by this limiter.
        max_requests: Hits permitted per key inside one window.
        window_seconds: Length of the trailing window.
    """

    def __init__(
        self,
        store: CounterStore,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, key: str) -> RateLimitDecision:
        """Count a request for ``key`` and decide whether it may proceed."""
        count, reset_after = await self.store.hit(key, self.window_seconds, self.max_requests)
        allowed = count <= self.max_requests
        if not allowed:
            logger.info("Rate limit hit for %s (%d per %ss)", key, self.max_requests, self.window_seconds)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_after=max(int(math.ceil(reset_after)), 0),
        )

    async def reset(self, key: str) -> None:
        await self.store.reset(key)
