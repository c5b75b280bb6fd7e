"""Sliding-window request limiter."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable

from reel_search.errors import RateLimited


class SlidingWindowRateLimiter:
    """Allows at most ``max_requests`` per ``window_seconds`` for each key."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def check(self, key: str) -> None:
        """Record one request for ``key`` or raise ``RateLimited``."""

        now = self._clock()
        with self._lock:
            self._evict(now)
            hits = self._hits[key]
            if len(hits) >= self.max_requests:
                retry_after = self.window_seconds - (now - hits[0])
                raise RateLimited(
                    "Rate limit exceeded",
                    retry_after=max(retry_after, 0.0),
                    hint=f"Max {self.max_requests} requests per {self.window_seconds}s",
                )
            hits.append(now)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def _evict(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if not hits:
                del self._hits[key]
