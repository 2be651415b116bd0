import logging
import time
from typing import Optional

import redis
from fastapi import HTTPException, Request

from .config import settings

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """
    Counts hits per key in fixed time windows stored in Redis.
    When Redis is unreachable requests are let through.
    """

    def __init__(self, redis_client: Optional[redis.Redis], limit: int, window_seconds: int, prefix: str):
        self.redis_client = redis_client
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    def hit(self, key: str) -> bool:
        """Record one request for ``key``; False once the window's limit is exceeded."""
        if self.redis_client is None:
            return True

        window = int(time.time() // self.window_seconds)
        redis_key = f"{self.prefix}:{key}:{window}"
        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, self.window_seconds)
            count, _ = pipe.execute()
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return True

        return count <= self.limit


_image_search_limiter = None

def get_image_search_limiter() -> FixedWindowRateLimiter:
    global _image_search_limiter
    if _image_search_limiter is None:
        try:
            client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Could not create Redis client: {e}")
            client = None
        _image_search_limiter = FixedWindowRateLimiter(
            client,
            settings.IMAGE_SEARCH_RATE_LIMIT,
            settings.IMAGE_SEARCH_RATE_WINDOW,
            prefix="ratelimit:image-search",
        )
    return _image_search_limiter


def image_search_rate_limit(request: Request):
    """Dependency guarding the public image search."""
    limiter = get_image_search_limiter()
    client_key = request.client.host if request.client else "anonymous"
    if not limiter.hit(client_key):
        logger.warning(f"Rate limit exceeded for {client_key}")
        raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")
