"""
Caching of dashboard figures.

Redis through django-redis when REDIS_URL is set (see settings.CACHES),
the local memory cache otherwise.
"""
import hashlib
import logging
from functools import wraps

from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)

DASHBOARD_STATS_CACHE_TTL = 300
DASHBOARD_DAILY_CACHE_TTL = 120

DASHBOARD_STATS_PREFIX = 'dashboard_stats'
DASHBOARD_DAILY_PREFIX = 'dashboard_daily'


def make_cache_key(prefix, *args, **kwargs):
    """`prefix:<md5 of the call arguments>`"""
    digest = hashlib.md5(f"{args}|{sorted(kwargs.items())}".encode()).hexdigest()
    return f"{prefix}:{digest}"


def cached_query(cache_ttl=60, key_prefix='query'):
    """
    Cache the return value of a function per call arguments.

        @cached_query(cache_ttl=120, key_prefix=DASHBOARD_DAILY_PREFIX)
        def daily_stats_data(day_iso):
            ...

    Arguments must have a stable repr (strings, numbers, dates).
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            key = make_cache_key(key_prefix, *args, **kwargs)
            data = cache.get(key)
            if data is None:
                data = func(*args, **kwargs)
                cache.set(key, data, cache_ttl)
                logger.debug(f"Cached {key_prefix} under {key} for {cache_ttl}s")
            return data
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """Delete every key containing `pattern`; only django-redis supports this"""
    delete_pattern = getattr(cache, 'delete_pattern', None)
    if delete_pattern is None:
        return 0
    try:
        deleted = delete_pattern(f"*{pattern}*")
    except Exception as e:
        logger.warning(f"Could not invalidate cache keys matching {pattern}: {e}")
        return 0
    if deleted:
        logger.info(f"Invalidated {deleted} cache keys matching {pattern}")
    return deleted


def dashboard_cache_keys(day=None):
    """Keys of the stats and daily figures for `day` (default today)"""
    day = day or timezone.localdate()
    return [
        make_cache_key(DASHBOARD_STATS_PREFIX),
        make_cache_key(DASHBOARD_DAILY_PREFIX, day.isoformat()),
    ]


def invalidate_dashboard_cache():
    cache.delete_many(dashboard_cache_keys())
    # daily figures of earlier days live under other keys
    invalidate_cache_pattern(DASHBOARD_DAILY_PREFIX)
