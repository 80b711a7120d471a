"""Rate limit keys and the Redis-backed limiter."""

from datetime import datetime

import redis

from backend.app.db.context import RequestContext
from backend.app.db.repositories import RetryAfter


def make_rate_limit_key(ctx: RequestContext, bucket: str) -> str:
    """``{user_id}:{bucket}``; quotas are tracked per user."""
    return f"{ctx.user_id}:{bucket}"


class RedisRateLimiter:
    """Fixed-window limiter shared by every API process through Redis.

    Each window gets its own key. A single MULTI/EXEC pipeline creates the key
    with its expiry when missing, increments it and reads the remaining TTL.
    """

    def __init__(self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def _window_key(self, key: str, now: datetime) -> str:
        window_start = int(now.timestamp()) // self._window_seconds * self._window_seconds
        return f"ratelimit:{key}:{window_start}"

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count one request against ``key``.

        Returns:
            RetryAfter if the window's quota is spent, None if allowed
        """
        redis_key = self._window_key(key, now)

        pipe = self._redis.pipeline()
        pipe.set(redis_key, 0, ex=self._window_seconds, nx=True)
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        _, count, ttl = pipe.execute()

        if count > self._max_requests:
            return RetryAfter(seconds=max(1, ttl))
        return None
