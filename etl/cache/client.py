"""
etl/cache/client.py

Cache clients exposing the ``delete(key)`` operation the invalidator needs.
"""

from __future__ import annotations

import logging
from typing import Protocol

import redis

from etl.config import CacheSettings

logger = logging.getLogger(__name__)


class CacheClient(Protocol):
    def delete(self, key: str) -> bool: ...


class RedisCache:
    """
    Redis-backed cache client.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 10.0) -> "RedisCache":
        return cls(
            redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        )

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(key))


class NullCache:
    """
    Used when no cache is configured; every delete is a no-op.
    """

    def delete(self, key: str) -> bool:
        return False


def build_cache_client(settings: CacheSettings) -> CacheClient:
    if not settings.redis_url:
        logger.warning("REDIS_URL not set, running without cache invalidation")
        return NullCache()
    return RedisCache.from_url(settings.redis_url)
