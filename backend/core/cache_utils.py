"""
Caching utilities for the dashboard aggregations
Uses Redis (django-redis) in production, any Django cache backend otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_CACHE_TTL = 300  # 5 minutes
DASHBOARD_STATS_CACHE_TTL = 600  # 10 minutes

DASHBOARD_KEY_PREFIXES = ('dashboard_metrics', 'dashboard_stats')


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Uses Redis SCAN to find and delete matching keys. Backends without
    pattern support (local memory in development and tests) are cleared.
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        cache.clear()
        logger.debug(f"Cache backend has no pattern support, cleared cache for pattern: {pattern}")
        return
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_dashboard(prefix, *args):
    """Returns tuple: (cached_data, cache_key)"""
    cache_key = make_cache_key(prefix, *args)
    return cache.get(cache_key), cache_key


def cache_dashboard(cache_key, data, ttl=DASHBOARD_CACHE_TTL):
    """Cache dashboard payload"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard payload: {cache_key}")


def invalidate_dashboard_cache():
    """Invalidate every cached dashboard payload"""
    for prefix in DASHBOARD_KEY_PREFIXES:
        invalidate_cache_pattern(prefix)
