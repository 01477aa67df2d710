"""
Redis fixed-window rate limiting for public (unauthenticated) endpoints
"""

import logging
import os
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.
    REDIS_URL wins; otherwise REDIS_HOST / REDIS_PORT / REDIS_PASSWORD / REDIS_DB.
    """
    global redis_client

    if redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        client.ping()
        logger.info("✅ Redis connected for rate limiting")
        redis_client = client

    return redis_client


def check_rate_limit(key: str, limit: int, window_seconds: int, client: redis.Redis) -> tuple[bool, int, int]:
    """
    INCR the window counter and set its expiry on first hit.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds
    return count <= limit, count, ttl


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a per-IP rate limiter dependency.

    Example usage:
        register_limit = create_rate_limiter(limit=10, window_seconds=60, key_prefix="register")

        @router.post("/register")
        async def register(..., _: None = Depends(register_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{_client_ip(request)}"
        try:
            is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())
        except redis.RedisError as e:
            # Fail open: an unavailable Redis must not block registrations
            logger.warning(f"⚠️ Rate limiting unavailable, allowing request: {e}")
            return

        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests")
            raise HTTPException(
                status_code=429,
                detail=f"Too many requests. Please try again in {ttl} seconds.",
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter
