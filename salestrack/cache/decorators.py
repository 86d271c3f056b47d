"""
cache/decorators.py — Result caching decorator

Wraps get_cached/set_cached from result_cache.py. Caches the return value
of a view function under a key built from the chosen parameters.

Usage:
    @cached_result(prefix="daily", tags=[TAG_DAILY], key_params=["days_ago", "days"])
    def _fetch(days_ago, days, db):
        ...
"""

import functools
import hashlib
import json
import logging

from . import result_cache

log = logging.getLogger("salestrack.cache")


def cached_result(prefix: str, tags=(), key_params: list[str] | None = None, ttl_seconds: int | None = None):
    """Decorator that caches a function's dict/list result.

    Args:
        prefix: Cache key prefix (e.g. "daily")
        tags: Invalidation tags stored with each entry
        key_params: kwarg names included in the key. If None, all kwargs
                    except db and request are used.
        ttl_seconds: Fixed TTL. If None, the entry lives until the top of
                     the next hour.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            excluded = {"db", "request"}
            if key_params is not None:
                key_dict = {k: kwargs.get(k) for k in key_params}
            else:
                key_dict = {k: v for k, v in kwargs.items() if k not in excluded}

            key_str = json.dumps(key_dict, sort_keys=True, default=str)
            key_hash = hashlib.md5(key_str.encode(), usedforsecurity=False).hexdigest()[:12]
            cache_key = f"{prefix}:{key_hash}"

            cached = result_cache.get_cached(cache_key)
            if cached is not None:
                log.debug("Cache HIT: %s", cache_key)
                return cached

            log.debug("Cache MISS: %s", cache_key)
            result = func(*args, **kwargs)

            if isinstance(result, (dict, list)):
                ttl = ttl_seconds if ttl_seconds is not None else result_cache.seconds_until_next_hour()
                result_cache.set_cached(cache_key, result, ttl, tags=tags)

            return result

        wrapper.cache_prefix = prefix
        wrapper.cache_tags = tuple(tags)
        return wrapper

    return decorator
