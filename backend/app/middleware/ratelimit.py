"""Per-user quota on the endpoints that call the AI collaborator."""

from datetime import datetime, timezone

from backend.app.db.context import RequestContext
from backend.app.db.repositories import RateLimiter, RetryAfter
from backend.app.ratelimit import make_rate_limit_key

AI_GENERATION_BUCKET = "ai_generation"

# Path suffix -> bucket. Generate and regenerate draw from one quota.
AI_ROUTE_BUCKETS: dict[str, str] = {
    "/itinerary/generate": AI_GENERATION_BUCKET,
    "/itinerary/regenerate": AI_GENERATION_BUCKET,
}


class RateLimitMiddleware:
    """Resolves a request path to its bucket and charges the caller's quota."""

    def __init__(self, limiter: RateLimiter, buckets: dict[str, str] | None = None) -> None:
        self._limiter = limiter
        self._buckets = AI_ROUTE_BUCKETS if buckets is None else buckets

    def bucket_for(self, path: str) -> str | None:
        """Bucket of ``path``, or None when the path is not limited."""
        normalized = path.rstrip("/")
        for suffix, bucket in self._buckets.items():
            if normalized.endswith(suffix):
                return bucket
        return None

    def charge(
        self, path: str, ctx: RequestContext, now: datetime | None = None
    ) -> RetryAfter | None:
        """Count one request against the caller's bucket for ``path``.

        Args:
            path: Request path
            ctx: Request context
            now: Current time (for testing)

        Returns:
            None if allowed or unlimited, otherwise how long to wait
        """
        bucket = self.bucket_for(path)
        if bucket is None:
            return None
        key = make_rate_limit_key(ctx, bucket)
        return self._limiter.check_quota(key, now or datetime.now(timezone.utc))
