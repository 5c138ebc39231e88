"""
Redis cache for the upcoming-events listing.

What is cached:
  - Serialized EventListResponse pages
  - Key pattern: "events:upcoming:page={page}&size={size}"

Invalidation:
  - Every committed booking changes available_seats, so the booking
    coordinator deletes all "events:upcoming:*" keys after commit
  - TTL (REDIS_CACHE_TTL) as safety net

What is never cached:
  - Single events and seat maps: buyers need live availability
  - Anything the seat ledger reads: it always goes to PostgreSQL

Redis is advisory. When it is down, reads fall through to the database and
reconnects are attempted at most once per RECONNECT_COOLDOWN_SECONDS.
"""

import json
import time
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LISTING_PREFIX = "events:upcoming:"
RECONNECT_COOLDOWN_SECONDS = 30

_redis_client: Optional[redis.Redis] = None
_last_failure: float = 0.0


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client, _last_failure

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        if time.monotonic() - _last_failure < RECONNECT_COOLDOWN_SECONDS:
            return None
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            _last_failure = time.monotonic()
            logger.warning("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _listing_key(page: int, page_size: int) -> str:
    return f"{LISTING_PREFIX}page={page}&size={page_size}"


async def get_cached_events(page: int, page_size: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _listing_key(page, page_size)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    return json.loads(data) if data else None


async def set_cached_events(page: int, page_size: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _listing_key(page, page_size)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_listing() -> None:
    """Drop every cached listing page. Best effort."""
    client = await get_redis()
    if not client:
        return

    try:
        keys = [key async for key in client.scan_iter(match=f"{LISTING_PREFIX}*", count=100)]
        if keys:
            await client.delete(*keys)
        logger.debug("cache_invalidated", keys_deleted=len(keys))
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    client = await get_redis()
    if not client:
        return {"status": "disabled" if not settings.REDIS_ENABLED else "unavailable"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
