"""
etl/main.py

FastAPI host for the ingestion runtime: the lifespan starts the scheduler
and queue worker, and operator endpoints expose run state and triggering.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from etl.logging_utils import configure_logging
from etl.runtime import ETLRuntime
from etl.schemas.etl import HealthResponse

logger = logging.getLogger(__name__)


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    from db.session import session_scope

    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; the operator runs ``alembic upgrade head``.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    actual = set(sa_inspect(get_engine()).get_table_names())
    missing = set(Base.metadata.tables.keys()) - actual
    if missing:
        logger.critical(
            "Schema mismatch: %d table(s) absent from the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(f"Schema mismatch: missing tables {', '.join(sorted(missing))}.")


def create_app(
    runtime: ETLRuntime | None = None,
    *,
    verify_database: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging()
    etl_runtime = runtime or ETLRuntime()

    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        if verify_database:
            _check_db()
            logger.info("Database connectivity confirmed")
            _check_schema()
            logger.info("Database schema validated")

        etl_runtime.start()
        try:
            yield
        finally:
            etl_runtime.shutdown()

    application = FastAPI(
        title="Rural Employment ETL",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.etl_runtime = etl_runtime

    from etl.api.routers import etl_router

    application.include_router(etl_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", scheduler_running=etl_runtime.started)

    return application
