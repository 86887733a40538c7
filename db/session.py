"""
db/session.py

Engine and session scope for the record store.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import get_bool_env, get_int_env, resolve_database_url


def create_db_engine() -> Engine:
    """
    Build a pooled PostgreSQL engine; pool sizing comes from DB_POOL_* variables.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported for the record store.")

    return create_engine(
        database_url,
        echo=get_bool_env("SQL_ECHO", False),
        pool_pre_ping=True,
        pool_recycle=get_int_env("DB_POOL_RECYCLE", 1800),
        pool_size=max(1, get_int_env("DB_POOL_SIZE", 5)),
        max_overflow=max(0, get_int_env("DB_MAX_OVERFLOW", 10)),
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    # Rows read in one chunk stay usable after the per-chunk commit.
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a fresh session and close it on exit; callers own the commit."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()
