"""Per-user quotas on the generation, edit and crud buckets, shared through Redis."""

from datetime import datetime

import redis

from backend.tripline.db.context import RequestContext
from backend.tripline.db.repositories import RetryAfter

KEY_PREFIX = "tripline:ratelimit"


def make_rate_limit_key(ctx: RequestContext, bucket: str) -> str:
    """``<userId>:<bucket>``; every user gets an independent quota per bucket."""
    return f"{ctx.user_id}:{bucket}"


def window_bounds(now: datetime, window_seconds: int) -> tuple[int, int]:
    """Epoch-aligned window containing ``now``.

    Returns:
        (window start as epoch seconds, seconds until the window closes)
    """
    epoch = int(now.timestamp())
    start = epoch - epoch % window_seconds
    return start, start + window_seconds - epoch


class RedisRateLimiter:
    """Fixed-window limiter with one counter per key and window.

    The counter expires when its window closes, so workers sharing the Redis
    instance share the quota without any cleanup.
    """

    def __init__(self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count this request and report whether it is over quota."""
        start, remaining = window_bounds(now, self._window_seconds)
        counter = f"{KEY_PREFIX}:{key}:{start}"

        pipe = self._redis.pipeline()
        pipe.incr(counter)
        pipe.expireat(counter, start + self._window_seconds)
        count, _ = pipe.execute()

        if count <= self._max_requests:
            return None
        return RetryAfter(seconds=max(1, remaining))
