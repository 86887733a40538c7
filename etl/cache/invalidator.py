"""
etl/cache/invalidator.py

Deletes cached derived views for entities whose records changed in a run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import redis

from etl.cache.client import CacheClient
from etl.cache.keys import entity_cache_keys
from etl.domain.records import EntityKey
from etl.domain.run import InvalidationResult

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """
    Best-effort invalidation: a failed delete is logged and the rest continue.
    """

    def __init__(
        self,
        cache: CacheClient,
        *,
        history_windows: Sequence[int] = (),
    ) -> None:
        self._cache = cache
        self._history_windows = tuple(history_windows)

    def invalidate(self, entities: Iterable[EntityKey]) -> InvalidationResult:
        deleted = 0
        failed = 0
        for entity in sorted(set(entities)):
            for key in entity_cache_keys(entity, self._history_windows):
                try:
                    self._cache.delete(key)
                    deleted += 1
                except (redis.RedisError, OSError) as exc:
                    failed += 1
                    logger.warning("Cache delete failed key=%s error=%s", key, exc)

        if deleted or failed:
            logger.info("Cache invalidation finished keys_deleted=%s keys_failed=%s", deleted, failed)
        return InvalidationResult(keys_deleted=deleted, keys_failed=failed)
