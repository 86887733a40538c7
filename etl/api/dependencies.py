"""
etl/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from etl.runtime import ETLRuntime


def get_etl_runtime(request: Request) -> ETLRuntime:
    """
    Return the runtime attached to the application by ``create_app``.
    """

    runtime = getattr(request.app.state, "etl_runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ETL runtime is not initialised.",
        )
    return runtime
