"""
etl/schemas package marker.
"""

from etl.schemas.etl import (
    ETLStatusResponse,
    ETLTriggerResponse,
    HealthResponse,
    RunStateResponse,
    ScheduledJobResponse,
)

__all__ = [
    "ETLStatusResponse",
    "ETLTriggerResponse",
    "HealthResponse",
    "RunStateResponse",
    "ScheduledJobResponse",
]
