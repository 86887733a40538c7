"""
etl/normalization/normalizer.py

Maps raw source records of unknown key spelling onto the canonical shape.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from etl.domain.records import (
    METRIC_FIELDS,
    NATURAL_KEY_FIELDS,
    PRIMARY_VOLUME_METRIC,
    CanonicalRecord,
    MissingEssentialFields,
    VolumePath,
)
from etl.normalization.field_candidates import (
    KEY_FIELD_CANDIDATES,
    METRIC_FIELD_CANDIDATES,
    VOLUME_COMPONENT_CANDIDATES,
)
from etl.normalization.resolver import KeyIndex, resolve_number, resolve_text

_MAX_REPORTED_SOURCE_KEYS = 15


class RecordNormalizer:
    """
    Resolve natural key, metrics and extended fields for one raw record.
    """

    def __init__(
        self,
        *,
        key_candidates: Mapping[str, Sequence[str]] | None = None,
        metric_candidates: Mapping[str, Sequence[str]] | None = None,
        volume_components: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._key_candidates = {
            field: tuple(values)
            for field, values in (key_candidates or KEY_FIELD_CANDIDATES).items()
        }
        self._metric_candidates = {
            field: tuple(values)
            for field, values in (metric_candidates or METRIC_FIELD_CANDIDATES).items()
        }
        self._volume_components = {
            field: tuple(values)
            for field, values in (volume_components or VOLUME_COMPONENT_CANDIDATES).items()
        }
        missing_keys = set(NATURAL_KEY_FIELDS) - set(self._key_candidates)
        if missing_keys:
            raise ValueError(f"Key candidates missing for: {sorted(missing_keys)}")

    def normalize(
        self,
        raw: Any,
        *,
        source_tag: str,
    ) -> CanonicalRecord | MissingEssentialFields:
        """
        Return a canonical record, or a marker when a natural-key field is missing.
        """

        if not isinstance(raw, Mapping):
            return MissingEssentialFields(missing=NATURAL_KEY_FIELDS)

        index = KeyIndex(raw)

        key_values: dict[str, str] = {}
        missing: list[str] = []
        for field in NATURAL_KEY_FIELDS:
            resolution = resolve_text(index, self._key_candidates[field])
            if resolution is None:
                missing.append(field)
            else:
                key_values[field] = resolution.value
        if missing:
            return MissingEssentialFields(
                missing=tuple(missing),
                source_keys=tuple(str(key) for key in list(raw)[:_MAX_REPORTED_SOURCE_KEYS]),
            )

        metrics: dict[str, float] = {field: 0.0 for field in METRIC_FIELDS}
        consumed_keys: set[str] = set()
        resolved_metrics: set[str] = set()
        for field, candidates in self._metric_candidates.items():
            resolution = resolve_number(index, candidates)
            if resolution is None:
                continue
            metrics[field] = resolution.value
            consumed_keys.add(resolution.source_key)
            resolved_metrics.add(field)

        volume_path = VolumePath.DIRECT
        if PRIMARY_VOLUME_METRIC not in resolved_metrics:
            derived = self._derive_primary_volume(index)
            if derived is None:
                volume_path = VolumePath.ABSENT
            else:
                metrics[PRIMARY_VOLUME_METRIC] = derived
                volume_path = VolumePath.DERIVED

        extended_fields = {
            str(key): value for key, value in raw.items() if key not in consumed_keys
        }

        return CanonicalRecord(
            region=key_values["region"],
            sub_region=key_values["sub_region"],
            fiscal_year=key_values["fiscal_year"],
            period=key_values["period"],
            metrics=metrics,
            extended_fields=extended_fields,
            source_tag=source_tag,
            volume_path=volume_path,
        )

    def _derive_primary_volume(self, index: KeyIndex) -> float | None:
        """
        Sum the sub-population components; None when none of them is present.
        """

        total = 0.0
        found = False
        for candidates in self._volume_components.values():
            resolution = resolve_number(index, candidates)
            if resolution is None:
                continue
            total += resolution.value
            found = True
        return total if found else None
