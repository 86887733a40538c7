"""
etl/scheduler package marker.
"""

from etl.scheduler.coordinator import RunCoordinator, RunState, TriggerResult, TriggerStatus
from etl.scheduler.jobs import build_scheduler, register_recurring_queue_job

__all__ = [
    "RunCoordinator",
    "RunState",
    "TriggerResult",
    "TriggerStatus",
    "build_scheduler",
    "register_recurring_queue_job",
]
