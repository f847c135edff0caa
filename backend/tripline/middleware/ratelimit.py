"""Rate limiting middleware and FastAPI dependency."""

from datetime import datetime
from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends, HTTPException, Request, status

from backend.tripline.api.auth import get_current_context
from backend.tripline.config import Settings, get_settings
from backend.tripline.db.context import RequestContext
from backend.tripline.db.inmemory import InMemoryRateLimiter
from backend.tripline.db.repositories import RateLimiter
from backend.tripline.ratelimit import RedisRateLimiter, make_rate_limit_key


class RateLimitMiddleware:
    """Maps request paths to buckets and enforces per-bucket rate limits."""

    def __init__(self, limiters: dict[str, RateLimiter], bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiters: Limiter per bucket name
            bucket_map: Mapping from path patterns to bucket names, checked in order
        """
        self._limiters = limiters
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, path: str, ctx: RequestContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            path: Request path
            ctx: Request context
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.now()

        bucket = self._get_bucket(path)
        limiter = self._limiters.get(bucket) if bucket else None

        if bucket is None or limiter is None:
            # No rate limit for this path
            return (True, 0)

        retry_after = limiter.check_quota(make_rate_limit_key(ctx, bucket), now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def _get_bucket(self, path: str) -> str | None:
        for pattern, bucket in self._bucket_map.items():
            if pattern in path:
                return bucket

        return None


def create_default_bucket_map() -> dict[str, str]:
    """Create default bucket mapping.

    Returns:
        Dictionary mapping path patterns to bucket names
    """
    return {
        "/itineraries/generate": "generation",
        "/edit": "edit",
        "/itineraries": "crud",
    }


def create_rate_limit_middleware(settings: Settings) -> RateLimitMiddleware:
    """Build middleware backed by Redis when configured, in-memory otherwise."""
    quotas = {
        "generation": settings.generation_runs_per_min,
        "edit": settings.edit_ops_per_min,
        "crud": settings.crud_ops_per_min,
    }

    limiters: dict[str, RateLimiter]
    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        limiters = {bucket: RedisRateLimiter(client, quota) for bucket, quota in quotas.items()}
    else:
        limiters = {bucket: InMemoryRateLimiter(quota) for bucket, quota in quotas.items()}

    return RateLimitMiddleware(limiters, create_default_bucket_map())


@lru_cache
def get_rate_limit_middleware() -> RateLimitMiddleware:
    """Get process-wide rate limit middleware."""
    return create_rate_limit_middleware(get_settings())


async def enforce_rate_limit(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    middleware: Annotated[RateLimitMiddleware, Depends(get_rate_limit_middleware)],
) -> None:
    """FastAPI dependency raising 429 when the caller is over quota."""
    allowed, retry_after = middleware.check_rate_limit(request.url.path, ctx)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after)},
        )
