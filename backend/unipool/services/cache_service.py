"""
Redis caching service for ride search results.

CACHING STRATEGY
================

What we cache:
  - Ride search responses (paginated, JSON-serialized)
  - Key pattern: "rides:list:page={page}&size={size}&src={source}&dst={destination}&min={min_seats}"

Invalidation strategy:
  - Any write that changes seats_available or ride visibility deletes every
    "rides:list:*" key: ride creation, booking request, booking status
    change, ride status change, deactivation
  - Short TTL as a safety net, since a stale listing can show seats that are
    already gone (the booking engine still rejects the request, so stale
    data costs a 409, never an oversell)

Why NOT cache individual rides:
  - Ride detail and booking paths need the live seat counter
  - Redis is advisory only; the database stays authoritative

Redis failures are logged and the cache is bypassed. They never fail a request.
"""

import json
from typing import Optional

import redis.asyncio as redis
from unipool.core.config import get_settings
from unipool.core.logging import get_logger
from unipool.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

RIDE_LIST_PREFIX = "rides:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await client.ping()
            _redis_client = client
            logger.info("redis_connected", url=settings.REDIS_URL)
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_ride_list_key(
    page: int,
    page_size: int,
    source: Optional[str],
    destination: Optional[str],
    min_seats: int,
) -> str:
    src = (source or "").strip().lower()
    dst = (destination or "").strip().lower()
    return f"{RIDE_LIST_PREFIX}page={page}&size={page_size}&src={src}&dst={dst}&min={min_seats}"


async def get_cached_rides(
    page: int,
    page_size: int,
    source: Optional[str],
    destination: Optional[str],
    min_seats: int,
) -> Optional[dict]:
    """Retrieve a cached ride search response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_ride_list_key(page, page_size, source, destination, min_seats)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_rides(
    page: int,
    page_size: int,
    source: Optional[str],
    destination: Optional[str],
    min_seats: int,
    data: dict,
) -> None:
    """Cache a ride search response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_ride_list_key(page, page_size, source, destination, min_seats)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_ride_cache() -> None:
    """
    Invalidate all cached ride listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{RIDE_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled" if not settings.REDIS_ENABLED else "unavailable"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
