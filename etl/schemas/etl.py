"""
etl/schemas/etl.py

Response schemas for the operator endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    scheduler_running: bool


class ScheduledJobResponse(BaseModel):
    job_id: str
    name: str
    next_run_time: str | None = None


class RunStateResponse(BaseModel):
    """
    API response model for the in-memory run state.
    """

    is_running: bool
    last_run_at: datetime | None = None
    last_source: str | None = None
    last_status: str | None = None
    runs_started: int = Field(..., ge=0)
    triggers_dropped: int = Field(..., ge=0)


class ETLStatusResponse(BaseModel):
    run_state: RunStateResponse
    scheduled_jobs: list[ScheduledJobResponse] = Field(default_factory=list)
    queue_pending: int | None = Field(default=None, ge=0)


class ETLTriggerResponse(BaseModel):
    """
    API response model for a queued run request.
    """

    message_id: str
    queue_name: str
    job_name: str
    enqueued_at: str | None = None
    run_in_progress: bool
