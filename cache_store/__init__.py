"""
Cache Store Package.

Process-wide TTL cache for provider results.
"""

from .housekeeping import CacheHousekeeper
from .keys import make_cache_key
from .store import CacheEntry, TTLCacheStore


__all__ = [
    "CacheEntry",
    "CacheHousekeeper",
    "TTLCacheStore",
    "make_cache_key",
]
