"""
etl/cache/keys.py

Deterministic cache key builders shared with the serving layer.
"""

from __future__ import annotations

from collections.abc import Iterable

from etl.domain.records import EntityKey


def district_current_key(region: str, sub_region: str) -> str:
    return f"district:{region}:{sub_region}:current"


def district_history_key(region: str, sub_region: str, months: int) -> str:
    return f"district:{region}:{sub_region}:history:{months}"


def state_compare_key(region: str, sub_region: str) -> str:
    return f"state:{region}:compare:{sub_region}"


def entity_cache_keys(entity: EntityKey, history_windows: Iterable[int] = ()) -> list[str]:
    """
    Every cache key derived from one entity that ingestion can make stale.

    History views are keyed by window length, so only windows present in the
    registry can be invalidated.
    """

    keys = [
        district_current_key(entity.region, entity.sub_region),
        state_compare_key(entity.region, entity.sub_region),
    ]
    keys.extend(
        district_history_key(entity.region, entity.sub_region, months)
        for months in history_windows
    )
    return keys
