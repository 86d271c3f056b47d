"""Result cache — Redis primary with database fallback.

Used for: analytics view results (TTL runs to the top of the next hour)
and the snapshot data range (24h TTL).

Entries carry tags. A completed scan invalidates every analytics tag so the
next request recomputes from fresh snapshots. In Redis each tag is a set of
the keys that carry it; in the database the tags live in a ",a,b," column.
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone, tzinfo

from ..config import settings
from ..database import SessionLocal
from ..models import ResultCacheEntry

log = logging.getLogger("salestrack.cache")

TAG_DAILY = "daily"
TAG_WEEKLY = "weekly"
TAG_MONTHLY = "monthly"
TAG_YEARLY = "yearly"
TAG_DATA_RANGE = "data-range"
TAG_ITEMS = "items"

ANALYTICS_TAGS = (TAG_DAILY, TAG_WEEKLY, TAG_MONTHLY, TAG_YEARLY, TAG_DATA_RANGE, TAG_ITEMS)

# Lazy-initialized Redis client
_redis_client = None
_redis_init_attempted = False
_REDIS_PREFIX = "salestrack:"
_TAG_PREFIX = f"{_REDIS_PREFIX}tag:"


def _get_redis():
    """Lazy-init Redis connection. Returns client or None if unavailable."""
    global _redis_client, _redis_init_attempted

    if _redis_init_attempted:
        return _redis_client

    _redis_init_attempted = True

    if os.environ.get("TESTING"):
        return None

    try:
        from ..config import settings
        if settings.cache_backend != "redis":
            log.info("Cache backend set to %s, skipping Redis", settings.cache_backend)
            return None

        import redis
        _redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=2,
            retry_on_timeout=True,
        )
        _redis_client.ping()
        log.info("Redis cache connected: %s", settings.redis_url)
    except Exception as e:
        log.warning("Redis unavailable, falling back to database cache: %s", e)
        _redis_client = None

    return _redis_client


def seconds_until_next_hour(now: datetime | None = None, tz: tzinfo | None = None) -> int:
    """Seconds from `now` to the next top of the hour on the display clock (1..3600).

    Zones with a half-hour offset roll over at :30 UTC.
    """
    now = now or datetime.now(timezone.utc)
    local = now.astimezone(tz or settings.display_tz)
    next_hour = local.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return max(1, int((next_hour.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()))


def _tag_column(tags) -> str:
    return "," + ",".join(tags) + "," if tags else ""


def get_cached(cache_key: str):
    """Cached value if present and unexpired, else None."""
    r = _get_redis()
    if r:
        try:
            data = r.get(f"{_REDIS_PREFIX}{cache_key}")
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            log.debug("Redis read error for %s: %s", cache_key, e)

    try:
        with SessionLocal() as db:
            row = (
                db.query(ResultCacheEntry)
                .filter(
                    ResultCacheEntry.cache_key == cache_key,
                    ResultCacheEntry.expires_at > datetime.now(timezone.utc),
                )
                .first()
            )
            if row:
                return row.data
    except Exception as e:
        log.debug("Cache read error for %s: %s", cache_key, e)
    return None


def set_cached(cache_key: str, data, ttl_seconds: int, tags=()) -> None:
    """Store data with a TTL and optional tags."""
    r = _get_redis()
    if r:
        try:
            pipe = r.pipeline()
            pipe.setex(f"{_REDIS_PREFIX}{cache_key}", ttl_seconds, json.dumps(data))
            for tag in tags:
                pipe.sadd(f"{_TAG_PREFIX}{tag}", cache_key)
            pipe.execute()
            return  # Success, skip the database write
        except Exception as e:
            log.debug("Redis write error for %s: %s", cache_key, e)

    try:
        expires = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        with SessionLocal() as db:
            row = db.query(ResultCacheEntry).filter(ResultCacheEntry.cache_key == cache_key).first()
            if row is None:
                row = ResultCacheEntry(cache_key=cache_key)
                db.add(row)
            row.data = data
            row.tags = _tag_column(tags)
            row.expires_at = expires
            row.created_at = datetime.now(timezone.utc)
            db.commit()
    except Exception as e:
        log.warning("Cache write error for %s: %s", cache_key, e)


def invalidate(cache_key: str) -> None:
    """Delete a specific cache entry."""
    r = _get_redis()
    if r:
        try:
            r.delete(f"{_REDIS_PREFIX}{cache_key}")
        except Exception as e:
            log.debug("Redis invalidate error for %s: %s", cache_key, e)

    try:
        with SessionLocal() as db:
            db.query(ResultCacheEntry).filter(ResultCacheEntry.cache_key == cache_key).delete()
            db.commit()
    except Exception as e:
        log.debug("Cache invalidate error for %s: %s", cache_key, e)


def invalidate_tag(tag: str) -> int:
    """Drop every entry carrying `tag`. Returns the number removed."""
    count = 0
    r = _get_redis()
    if r:
        try:
            tag_key = f"{_TAG_PREFIX}{tag}"
            keys = r.smembers(tag_key)
            if keys:
                count += r.delete(*[f"{_REDIS_PREFIX}{k}" for k in keys])
            r.delete(tag_key)
        except Exception as e:
            log.debug("Redis tag invalidation error for %s: %s", tag, e)

    try:
        with SessionLocal() as db:
            count += (
                db.query(ResultCacheEntry)
                .filter(ResultCacheEntry.tags.like(f"%,{tag},%"))
                .delete(synchronize_session=False)
            )
            db.commit()
    except Exception as e:
        log.debug("Cache tag invalidation error for %s: %s", tag, e)
    return count


def invalidate_tags(tags) -> int:
    total = sum(invalidate_tag(t) for t in tags)
    log.info("Cache invalidated tags %s (%d entries)", ",".join(tags), total)
    return total


def cleanup_expired() -> int:
    """Remove expired database entries. Returns count deleted.

    Called by the scheduler every 6 hours. Redis expires keys by itself.
    """
    count = 0
    try:
        with SessionLocal() as db:
            count = (
                db.query(ResultCacheEntry)
                .filter(ResultCacheEntry.expires_at < datetime.now(timezone.utc))
                .delete(synchronize_session=False)
            )
            db.commit()
            if count:
                log.info("Cache cleanup: removed %d expired entries", count)
    except Exception as e:
        log.warning("Cache cleanup error: %s", e)
    return count
