"""
etl/scheduler/coordinator.py

Single-flight guard shared by every trigger source (cron, work queue, API,
CLI). At most one run executes per process; overlapping triggers are dropped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from etl.domain.run import PipelineRunResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TriggerStatus:
    COMPLETED = "completed"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass(frozen=True)
class TriggerResult:
    status: str
    source: str
    run_result: PipelineRunResult | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status != TriggerStatus.DROPPED


@dataclass
class RunState:
    """
    In-memory run state owned by one coordinator; reset on process restart.
    """

    is_running: bool = False
    last_run_at: datetime | None = None
    last_source: str | None = None
    last_status: str | None = None
    runs_started: int = 0
    triggers_dropped: int = 0


class RunCoordinator:
    """
    Idle -> Running -> Idle state machine around a pipeline runner.
    """

    def __init__(
        self,
        runner: Callable[[], PipelineRunResult],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._runner = runner
        self._clock = clock
        self._lock = threading.Lock()
        self._state = RunState()

    def trigger(self, source: str) -> TriggerResult:
        """
        Run now unless a run is in flight. Never raises on run failure.
        """

        with self._lock:
            if self._state.is_running:
                self._state.triggers_dropped += 1
                logger.info("ETL run already in progress, dropping trigger source=%s", source)
                return TriggerResult(status=TriggerStatus.DROPPED, source=source)
            self._state.is_running = True
            self._state.last_run_at = self._clock()
            self._state.last_source = source
            self._state.runs_started += 1

        logger.info("ETL run triggered source=%s", source)
        outcome: TriggerResult
        try:
            run_result = self._runner()
        except Exception as exc:  # noqa: BLE001
            logger.exception("ETL run raised source=%s", source)
            outcome = TriggerResult(status=TriggerStatus.FAILED, source=source, error=str(exc))
        else:
            if run_result.succeeded:
                outcome = TriggerResult(status=TriggerStatus.COMPLETED, source=source, run_result=run_result)
            else:
                outcome = TriggerResult(
                    status=TriggerStatus.FAILED,
                    source=source,
                    run_result=run_result,
                    error=run_result.error,
                )
        finally:
            with self._lock:
                self._state.is_running = False

        with self._lock:
            self._state.last_status = outcome.status
        logger.info("ETL run finished source=%s status=%s", source, outcome.status)
        return outcome

    def status(self) -> RunState:
        """Return a copy of the current run state."""
        with self._lock:
            return replace(self._state)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.is_running
