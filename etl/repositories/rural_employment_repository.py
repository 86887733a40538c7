"""
etl/repositories/rural_employment_repository.py

Natural-key read/insert/update access to the canonical record table.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from db.models.rural_employment_record import RuralEmploymentRecord
from etl.domain.records import CanonicalRecord, NaturalKey, StoredRecord
from etl.repositories.errors import RecordConflictError, RecordStoreError, StoreConnectionError

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """
    Operations the ingestion pipeline needs from the canonical store.
    """

    def find_one(self, key: NaturalKey) -> StoredRecord | None: ...

    def insert(self, record: CanonicalRecord, *, written_at: datetime) -> None: ...

    def update_by_key(self, key: NaturalKey, fields: Mapping[str, Any]) -> None: ...

    def commit(self) -> None: ...


def _is_connection_failure(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, (DisconnectionError, InterfaceError, OperationalError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class RuralEmploymentRepository:
    """
    SQLAlchemy-backed record store.

    Every read and write runs inside a SAVEPOINT so one failing record rolls
    back alone; ``commit()`` makes a chunk of writes durable.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_one(self, key: NaturalKey) -> StoredRecord | None:
        stmt = (
            select(RuralEmploymentRecord)
            .where(*self._key_clause(key))
            .execution_options(populate_existing=True)
        )
        with self._guard("lookup", key):
            with self._session.begin_nested():
                row = self._session.scalars(stmt).one_or_none()

        if row is None:
            return None
        return StoredRecord(
            key=key,
            metrics=dict(row.metrics or {}),
            extended_fields=dict(row.extended_fields or {}),
            source_tag=row.source_tag,
            last_updated=row.last_updated,
        )

    def insert(self, record: CanonicalRecord, *, written_at: datetime) -> None:
        model = RuralEmploymentRecord(
            region=record.region,
            sub_region=record.sub_region,
            fiscal_year=record.fiscal_year,
            period=record.period,
            metrics=dict(record.metrics),
            extended_fields=dict(record.extended_fields),
            source_tag=record.source_tag,
            last_updated=written_at,
        )
        try:
            with self._guard("insert", record.natural_key):
                with self._session.begin_nested():
                    self._session.add(model)
        except RecordStoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise RecordConflictError(
                    f"Natural key already present: {record.natural_key}"
                ) from exc.__cause__
            raise

    def update_by_key(self, key: NaturalKey, fields: Mapping[str, Any]) -> None:
        stmt = (
            update(RuralEmploymentRecord)
            .where(*self._key_clause(key))
            .values(**dict(fields))
            .execution_options(synchronize_session=False)
        )
        with self._guard("update", key):
            with self._session.begin_nested():
                result = self._session.execute(stmt)
        if result.rowcount == 0:
            raise RecordStoreError(f"No stored record matched key {key} during update.")

    def commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("Record store commit failed error=%s", exc)
            raise StoreConnectionError("Failed to commit record store transaction.") from exc

    @staticmethod
    def _key_clause(key: NaturalKey) -> tuple[Any, ...]:
        return (
            RuralEmploymentRecord.region == key.region,
            RuralEmploymentRecord.sub_region == key.sub_region,
            RuralEmploymentRecord.fiscal_year == key.fiscal_year,
            RuralEmploymentRecord.period == key.period,
        )

    @contextmanager
    def _guard(self, operation: str, key: NaturalKey | None) -> Iterator[None]:
        """
        Translate SQLAlchemy failures into store-layer exceptions.
        """

        try:
            yield
        except IntegrityError as exc:
            raise RecordStoreError(f"{operation} violated a constraint for key {key}") from exc
        except SQLAlchemyError as exc:
            if _is_connection_failure(exc):
                logger.error(
                    "Record store connection failure operation=%s key=%s error=%s",
                    operation,
                    key,
                    exc,
                )
                raise StoreConnectionError(f"Store unavailable during {operation}.") from exc
            raise RecordStoreError(f"{operation} failed for key {key}: {exc}") from exc
