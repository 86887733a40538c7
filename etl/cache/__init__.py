"""
etl/cache package marker.
"""

from etl.cache.client import CacheClient, NullCache, RedisCache, build_cache_client
from etl.cache.invalidator import CacheInvalidator
from etl.cache.keys import district_current_key, district_history_key, entity_cache_keys, state_compare_key

__all__ = [
    "CacheClient",
    "CacheInvalidator",
    "NullCache",
    "RedisCache",
    "build_cache_client",
    "district_current_key",
    "district_history_key",
    "entity_cache_keys",
    "state_compare_key",
]
