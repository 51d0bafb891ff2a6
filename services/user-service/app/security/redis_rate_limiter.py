"""Redis-backed fixed window rate limiter."""

from __future__ import annotations

import math

from redis import Redis

from .rate_limiter import RateLimitDecision


class RedisFixedWindowRateLimiter:
    """Distributed fixed window limiter built on pipelined ``INCR``/``PTTL`` and key expiry.

    Each key holds the hit count of its current window. The first hit of a
    window sets the key's TTL to the window length, so the counter disappears,
    and the window resets, when the TTL runs out.
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "rate"
    ) -> None:
        """Keep the Redis client and window configuration."""
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` across every service instance sharing Redis."""
        redis_key = f"{self._key_prefix}:{key}"
        pipe = self._client.pipeline()
        pipe.incr(redis_key)
        pipe.pttl(redis_key)
        count, ttl_ms = pipe.execute()
        if ttl_ms < 0:
            # first hit of the window, or a counter left without expiry
            self._client.pexpire(redis_key, self._window_ms)
            ttl_ms = self._window_ms
        return RateLimitDecision(
            allowed=count <= self._max_requests,
            limit=self._max_requests,
            remaining=max(0, self._max_requests - count),
            reset_after=math.ceil(ttl_ms / 1000),
        )
