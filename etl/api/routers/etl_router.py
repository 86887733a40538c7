"""
etl/api/routers/etl_router.py

Operator endpoints: run state and queued run requests.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from etl.api.dependencies import get_etl_runtime
from etl.runtime import ETLRuntime, QueueDisabledError
from etl.schemas.etl import (
    ETLStatusResponse,
    ETLTriggerResponse,
    RunStateResponse,
    ScheduledJobResponse,
)

router = APIRouter(tags=["etl"])


@router.get("/etl/status", response_model=ETLStatusResponse)
def get_etl_status(runtime: ETLRuntime = Depends(get_etl_runtime)) -> ETLStatusResponse:
    state = runtime.run_state()
    return ETLStatusResponse(
        run_state=RunStateResponse(
            is_running=state.is_running,
            last_run_at=state.last_run_at,
            last_source=state.last_source,
            last_status=state.last_status,
            runs_started=state.runs_started,
            triggers_dropped=state.triggers_dropped,
        ),
        scheduled_jobs=[
            ScheduledJobResponse(job_id=job.job_id, name=job.name, next_run_time=job.next_run_time)
            for job in runtime.scheduled_jobs()
        ],
        queue_pending=runtime.queue_pending(),
    )


@router.post(
    "/etl/trigger",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ETLTriggerResponse,
)
def trigger_etl_run(runtime: ETLRuntime = Depends(get_etl_runtime)) -> ETLTriggerResponse:
    """
    Enqueue a run; the queue worker hands it to the coordinator, which drops
    it if a run is already in progress.
    """

    try:
        message = runtime.request_run(source="api")
    except QueueDisabledError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return ETLTriggerResponse(
        message_id=message.message_id,
        queue_name=message.queue_name,
        job_name=message.job_name,
        enqueued_at=message.enqueued_at,
        run_in_progress=runtime.coordinator.is_running,
    )
