"""
Caching utilities for expensive aggregate queries
Uses Redis when configured, local memory otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_STATS_CACHE_TTL = 60  # 1 minute

DASHBOARD_STATS_CACHE_PREFIX = "dashboard_stats"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def dashboard_stats_cache_key():
    return make_cache_key(DASHBOARD_STATS_CACHE_PREFIX)


def get_cached_dashboard_stats():
    """Get cached dashboard stats. Returns tuple: (cached_data, cache_key)"""
    cache_key = dashboard_stats_cache_key()
    return cache.get(cache_key), cache_key


def cache_dashboard_stats(cache_key, data, ttl=DASHBOARD_STATS_CACHE_TTL):
    """Cache dashboard stats data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard stats: {cache_key}")


def invalidate_dashboard_cache():
    """Drop the cached dashboard stats"""
    try:
        cache.delete(dashboard_stats_cache_key())
        logger.info("Invalidated dashboard stats cache")
    except Exception as e:
        logger.warning(f"Error invalidating dashboard cache: {e}")
