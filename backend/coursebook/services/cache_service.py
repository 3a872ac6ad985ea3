"""
Redis caching for coach usage reports.

CACHING STRATEGY
================

What we cache:
  - Coach usage reports (JSON-serialized), one key per coach and month
  - Key pattern: "usage:coach:{coach_user_id}:month={YYYY-MM|all}"

What we never cache:
  - Anything read by the admission path. Credit balances and seat counts used
    to admit a booking are always counted inside the locked transaction.
  - Per-user credit summaries. Users expect to see a booking reflected
    immediately, and the query is a pair of indexed aggregates.

Invalidation strategy:
  - On booking commit and on cancellation: delete every "usage:coach:*" key
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Redis is optional. When disabled or unreachable every call degrades to a miss
and the report is computed from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from coursebook.core.config import get_settings
from coursebook.core.logging import get_logger
from coursebook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

USAGE_KEY_PREFIX = "usage:coach:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
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
        except Exception as e:
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


def make_usage_key(coach_user_id: int, month: Optional[str]) -> str:
    return f"{USAGE_KEY_PREFIX}{coach_user_id}:month={month or 'all'}"


async def get_cached_usage(coach_user_id: int, month: Optional[str]) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_usage_key(coach_user_id, month)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", "hit")
            return json.loads(data)
        record_cache_operation("get", "miss")
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_usage(coach_user_id: int, month: Optional[str], data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = make_usage_key(coach_user_id, month)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", "ok")
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_usage_cache() -> None:
    """
    Drop every cached coach report.
    Called after a booking or cancellation has committed, never inside the
    admission transaction.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{USAGE_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        record_cache_operation("invalidate", "ok")
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        record_cache_operation("invalidate", "error")
        logger.error("cache_invalidation_error", error=str(e))


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
