"""
Redis rate limiting for the public intake endpoints
Fails open: when Redis is unreachable requests are allowed and a warning is logged
"""

import logging
from typing import Optional

import redis
from fastapi import HTTPException, Request

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def _mask_url(url: str) -> str:
    if "@" in url:
        protocol = url.split("@")[0].split(":")[0]
        return f"{protocol}:****@{url.split('@')[1]}"
    return "****"


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client; None when REDIS_URL is not set"""
    global redis_client

    if redis_client is None and REDIS_URL:
        logger.info(f"📡 Using Redis URL connection: {_mask_url(REDIS_URL)}")
        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    return redis_client


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Fixed-window counter. The window starts with the first hit: EXPIRE is
    only set when the key is new or has lost its TTL.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    count = int(count)
    ttl = int(ttl) if ttl is not None else -1
    if count == 1 or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds
    return count <= limit, count, ttl


async def rate_limit_dependency(
    request: Request, limit: int, window_seconds: int, key_prefix: str = "rate_limit"
):
    """FastAPI dependency body for per-IP rate limiting"""
    if not RATE_LIMIT_ENABLED:
        return

    try:
        client = get_redis_client()
        if client is None:
            logger.debug("Rate limiting skipped: REDIS_URL not configured")
            return

        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)
    except redis.RedisError as e:
        logger.warning(f"⚠️ Rate limiting unavailable, allowing request (fail-open): {e}")
        return

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
                "limit": limit,
                "window_seconds": window_seconds,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        rate_limit_submissions = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="intake")

        @router.post("/{slug}/booking-requests")
        async def submit(data: BookingRequestCreate, _: None = Depends(rate_limit_submissions)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
