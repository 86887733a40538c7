"""
tests/conftest.py

Shared in-memory fakes for the record store and cache.

No test here needs PostgreSQL, Redis or network access; the repository
tests run against an in-memory SQLite engine instead.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from etl.domain.records import CanonicalRecord, NaturalKey, StoredRecord
from etl.repositories.errors import RecordConflictError, RecordStoreError, StoreConnectionError


class InMemoryRecordStore:
    """
    Dict-backed ``RecordStore`` that counts every write it performs.
    """

    def __init__(self) -> None:
        self.rows: dict[NaturalKey, StoredRecord] = {}
        self.inserts = 0
        self.updates = 0
        self.commits = 0
        self.fail_keys: set[NaturalKey] = set()

    @property
    def writes(self) -> int:
        return self.inserts + self.updates

    def find_one(self, key: NaturalKey) -> StoredRecord | None:
        if key in self.fail_keys:
            raise RecordStoreError(f"lookup failed for {key}")
        return self.rows.get(key)

    def insert(self, record: CanonicalRecord, *, written_at: datetime) -> None:
        key = record.natural_key
        if key in self.rows:
            raise RecordConflictError(f"duplicate {key}")
        self.rows[key] = StoredRecord(
            key=key,
            metrics=dict(record.metrics),
            extended_fields=dict(record.extended_fields),
            source_tag=record.source_tag,
            last_updated=written_at,
        )
        self.inserts += 1

    def update_by_key(self, key: NaturalKey, fields: Mapping[str, Any]) -> None:
        existing = self.rows.get(key)
        if existing is None:
            raise RecordStoreError(f"no row for {key}")
        self.rows[key] = replace(
            existing,
            metrics=dict(fields.get("metrics", existing.metrics)),
            extended_fields=dict(fields.get("extended_fields", existing.extended_fields)),
            source_tag=fields.get("source_tag", existing.source_tag),
            last_updated=fields.get("last_updated", existing.last_updated),
        )
        self.updates += 1

    def commit(self) -> None:
        self.commits += 1


class DisconnectingRecordStore(InMemoryRecordStore):
    """Fails every lookup as if the database went away."""

    def find_one(self, key: NaturalKey) -> StoredRecord | None:
        raise StoreConnectionError("connection reset")


class FakeCache:
    """
    Records deleted keys; keys listed in ``failing_keys`` raise ``OSError``.
    """

    def __init__(self, failing_keys: set[str] | None = None) -> None:
        self.deleted: list[str] = []
        self.failing_keys = failing_keys or set()

    def delete(self, key: str) -> bool:
        if key in self.failing_keys:
            raise OSError(f"cache unavailable for {key}")
        self.deleted.append(key)
        return True


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 10, 1, 2, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


def make_raw_record(
    district: str = "Surat",
    *,
    state: str = "Gujarat",
    fin_year: str = "2023-24",
    month: str = "Apr",
    **extra: Any,
) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "state_name": state,
        "district_name": district,
        "fin_year": fin_year,
        "month": month,
    }
    raw.update(extra)
    return raw


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def raw_record_factory():
    return make_raw_record


@pytest.fixture()
def store_scope_factory():
    """Wrap a store instance in the context-manager factory the services expect."""

    def _factory(target_store: InMemoryRecordStore):
        @contextmanager
        def _scope() -> Iterator[InMemoryRecordStore]:
            yield target_store

        return _scope

    return _factory


@pytest.fixture()
def disconnecting_store() -> DisconnectingRecordStore:
    return DisconnectingRecordStore()
