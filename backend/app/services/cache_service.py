"""
Redis caching service for catalog listings.

CACHING STRATEGY
================

What we cache:
  - Plan listings and reward listings (JSON-serialized response payloads)
  - Key pattern: "catalog:{name}:{variant}", e.g. "catalog:plans:visible"

Why:
  - Catalogs are read on every dashboard page and change only on admin edits

Invalidation strategy:
  - Any catalog write deletes every key under "catalog:{name}:"
  - TTL-based expiry as safety net

What is never cached:
  - Balances, ledger history and bookings. Those are read from the database
    on every request so the write path never races a stale copy.

Redis is optional. When disabled or unreachable every function here degrades
to a no-op / miss and the request is served from the database.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _catalog_key(catalog: str, variant: str) -> str:
    return f"catalog:{catalog}:{variant}"


async def get_cached_catalog(catalog: str, variant: str = "all") -> Optional[Any]:
    client = await get_redis()
    if not client:
        return None

    key = _catalog_key(catalog, variant)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_catalog(catalog: str, variant: str, data: Any) -> None:
    client = await get_redis()
    if not client:
        return

    key = _catalog_key(catalog, variant)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_catalog(catalog: str) -> None:
    """Drop every cached variant of one catalog."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=_catalog_key(catalog, "*"), count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", catalog=catalog, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", catalog=catalog, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

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
    except Exception as e:
        return {"status": "error", "error": str(e)}
