"""
In-memory caching layer.

Usage:
    from sportsfeed.cache import FeedCache, build_cache_key

    cache = FeedCache()
    cache.put(build_cache_key("football", {"date": "2024-12-10"}), records)
"""

from sportsfeed.cache.cache_keys import CacheKeys, build_cache_key, normalize_params
from sportsfeed.cache.memory_cache import CacheEntry, FeedCache, Record, is_fresh

__all__ = [
    "CacheEntry",
    "CacheKeys",
    "FeedCache",
    "Record",
    "build_cache_key",
    "is_fresh",
    "normalize_params",
]
