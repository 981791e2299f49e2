"""
Caching for derived per-alumnus data.

Engagement metrics need several aggregate queries, so they are cached per
user and invalidated by the signals in cache_signals.py.
"""
from django.core.cache import cache
import logging

from .conf import get_setting

logger = logging.getLogger(__name__)

# Cache key prefixes
ENGAGEMENT_KEY_PREFIX = 'engagement:'


def get_engagement_cache_key(user_id: int) -> str:
    """Get cache key for a user's engagement metrics"""
    return f"{ENGAGEMENT_KEY_PREFIX}{user_id}"


def cache_engagement_data(user_id: int, data: dict, ttl: int = None):
    """Cache engagement metrics for fast retrieval"""
    ttl = ttl or get_setting('ENGAGEMENT_CACHE_TTL')
    cache.set(get_engagement_cache_key(user_id), data, ttl)
    logger.debug(f"Cached engagement metrics for user {user_id}")


def get_cached_engagement(user_id: int):
    """Get cached engagement metrics by user ID"""
    cached_data = cache.get(get_engagement_cache_key(user_id))
    if cached_data is not None:
        logger.debug(f"Cache hit for engagement: {user_id}")
    return cached_data


def invalidate_engagement_cache(*user_ids):
    """Invalidate engagement metrics for one or more users"""
    keys = [get_engagement_cache_key(user_id) for user_id in user_ids if user_id]
    if not keys:
        return
    try:
        cache.delete_many(keys)
        logger.debug(f"Invalidated engagement cache: {keys}")
    except Exception as e:
        logger.warning(f"Could not invalidate engagement cache {keys}: {str(e)}")
