"""
etl/normalization/resolver.py

Generic "first present, non-empty, parseable" field resolution over raw
records whose key spelling is not known in advance.

Matching order for every candidate spelling:
  1. exact key
  2. case-insensitive key
  3. separator-insensitive key (spaces, underscores and hyphens ignored)

All functions here are pure; they never mutate the raw record.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

_SEPARATORS = re.compile(r"[\s_\-]+")


def fold_key(key: str) -> str:
    """
    Reduce a column name to its separator- and case-insensitive form.
    """

    return _SEPARATORS.sub("", key.strip().lower())


@dataclass(frozen=True)
class Resolution:
    """
    A resolved field value and the raw key it came from.
    """

    value: Any
    source_key: str


class KeyIndex:
    """
    Case- and separator-insensitive lookup over one raw record's keys.
    """

    def __init__(self, raw: Mapping[str, Any]) -> None:
        self._raw = raw
        self._by_lower: dict[str, list[str]] = {}
        self._by_folded: dict[str, list[str]] = {}
        for key in raw:
            if not isinstance(key, str):
                continue
            self._by_lower.setdefault(key.lower(), []).append(key)
            self._by_folded.setdefault(fold_key(key), []).append(key)

    def matches(self, candidate: str) -> Iterator[str]:
        """
        Yield raw keys matching one candidate spelling, strictest match first.
        """

        ordered: list[str] = []
        if candidate in self._raw:
            ordered.append(candidate)
        ordered.extend(self._by_lower.get(candidate.lower(), ()))
        ordered.extend(self._by_folded.get(fold_key(candidate), ()))

        seen: set[str] = set()
        for key in ordered:
            if key in seen:
                continue
            seen.add(key)
            yield key

    def iter_values(self, candidates: Sequence[str]) -> Iterator[tuple[str, Any]]:
        """
        Yield (raw_key, value) pairs in candidate priority order.
        """

        seen: set[str] = set()
        for candidate in candidates:
            for key in self.matches(candidate):
                if key in seen:
                    continue
                seen.add(key)
                yield key, self._raw[key]


def coerce_text(value: Any) -> str | None:
    """
    Return a trimmed non-empty string for scalar values, else None.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return text or None
    return None


def parse_number(value: Any) -> float | None:
    """
    Parse a finite number, tolerating thousands separators.

    Anything that is not a finite number yields None (absent), never 0.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def resolve_text(index: KeyIndex, candidates: Sequence[str]) -> Resolution | None:
    for key, value in index.iter_values(candidates):
        text = coerce_text(value)
        if text is not None:
            return Resolution(value=text, source_key=key)
    return None


def resolve_number(index: KeyIndex, candidates: Sequence[str]) -> Resolution | None:
    for key, value in index.iter_values(candidates):
        number = parse_number(value)
        if number is not None:
            return Resolution(value=number, source_key=key)
    return None
