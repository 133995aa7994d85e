"""
Redis caching for the public room category listing.

What we cache:
  - The serialized category list served at GET /rooms/categories
  - Key: "rooms:categories:list"

Invalidation:
  - Any category create/update/delete deletes every "rooms:categories:*" key
  - TTL-based expiry as safety net

What we never cache:
  - Availability searches and bookings. Stale availability would offer rooms
    that are already taken.

Redis is optional. When it is disabled or unreachable every read is a miss and
every write is skipped.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

CATEGORY_LIST_KEY = "rooms:categories:list"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_cached_categories() -> Optional[list]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(CATEGORY_LIST_KEY)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=CATEGORY_LIST_KEY, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    return json.loads(data) if data else None


async def set_cached_categories(data: list) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(CATEGORY_LIST_KEY, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=CATEGORY_LIST_KEY, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=CATEGORY_LIST_KEY, error=str(e))


async def invalidate_category_cache() -> None:
    """Delete all cached category listings (prefix scan)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match="rooms:categories:*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis cache statistics for the health endpoint."""
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
