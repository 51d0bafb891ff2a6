"""In-memory fixed window rate limiter implementation."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a rate-limit check, with the values advertised in ``RateLimit-*`` headers."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: int


class FixedWindowRateLimiter:
    """Thread-safe per-key request counter over fixed windows.

    The first hit for a key opens a window of ``window_seconds``; hits are counted
    until the window ends, after which the next hit opens a fresh window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise limiter parameters and per-key storage."""
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = Lock()

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self._window:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
        reset_after = max(0, math.ceil(started + self._window - now))
        return RateLimitDecision(
            allowed=count <= self._max_requests,
            limit=self._max_requests,
            remaining=max(0, self._max_requests - count),
            reset_after=reset_after,
        )
