"""
Fixed-interval sync loop.

One cycle runs at startup and then one per interval, measured from the end of
the previous cycle so cycles never overlap. Each cycle refreshes credentials
and then runs the data pipeline with the fresh bearer token. Any failure is
caught at the cycle boundary, logged, and the loop carries on.
"""
from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from robin_sync.application.credentials import CredentialManager
from robin_sync.application.exceptions import PipelineError
from robin_sync.application.pipeline import DataPipeline, PipelineReport
from robin_sync.config import settings
from robin_sync.infrastructure import log_utils


class CycleState(str, enum.Enum):
    IDLE = "idle"
    REFRESHING_CREDENTIALS = "refreshing_credentials"
    REFRESH_FAILED = "refresh_failed"
    REFRESH_OK = "refresh_ok"
    RUNNING_PIPELINE = "running_pipeline"
    PIPELINE_FAILED = "pipeline_failed"
    PIPELINE_OK = "pipeline_ok"


@dataclass
class CycleResult:
    """Outcome of a single cycle."""

    success: bool
    state: CycleState
    started_at: datetime
    finished_at: Optional[datetime] = None
    error_kind: Optional[str] = None
    detail: Optional[str] = None
    report: Optional[PipelineReport] = None
    skipped: bool = False

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary_line(self) -> str:
        if self.skipped:
            return "Cycle summary: result=skipped | reason=previous cycle still running"
        verdict = "success" if self.success else "failed"
        line = f"Cycle summary: result={verdict} | state={self.state.value} | duration={self.duration_seconds:.2f}s"
        if self.report is not None:
            line += f" | {self.report.summary()}"
        if self.error_kind:
            line += f" | error={self.error_kind}: {self.detail}"
        return line

    def log_level(self) -> str:
        return "INFO" if self.success or self.skipped else "ERROR"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe_error(exc: BaseException) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    if isinstance(exc, PipelineError):
        if exc.stage:
            message = f"[{exc.stage}] {message}"
        if exc.url:
            message += f" url={exc.url}"
        if exc.response_body:
            message += f" response={exc.response_body}"
    return message


class SyncScheduler:
    """Owns the timer and the cycle lifecycle; holds no domain data itself."""

    def __init__(
        self,
        credentials: CredentialManager,
        pipeline: DataPipeline,
        *,
        sleep: Optional[Callable[[float], object]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._credentials = credentials
        self._pipeline = pipeline
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._clock = clock
        self._cycle_lock = threading.Lock()
        self._state = CycleState.IDLE
        self.cycles_run = 0
        self.last_result: Optional[CycleResult] = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self, interval: Optional[float] = None) -> None:
        """Run a cycle now, then one per ``interval`` seconds until :meth:`stop`.

        A scheduler that has been stopped stays stopped, including when
        :meth:`stop` was called before :meth:`start`.
        """
        interval = settings.SYNC_INTERVAL_SECONDS if interval is None else interval
        if interval <= 0:
            raise ValueError("Sync interval must be positive.")

        log_utils.info(f"Scheduler starting with a {interval:g}s interval.")
        while not self._stop_event.is_set():
            self.run_cycle()
            if self._stop_event.is_set():
                break
            self._sleep(interval)
        log_utils.info("Scheduler stopped.")

    def stop(self) -> None:
        self._stop_event.set()

    def run_cycle(self) -> CycleResult:
        """Run one refresh-then-pipeline cycle. Never raises for cycle failures."""
        started_at = self._clock()
        if not self._cycle_lock.acquire(blocking=False):
            result = CycleResult(success=False, state=self._state, started_at=started_at, skipped=True)
            log_utils.warn(result.summary_line())
            return result

        try:
            result = self._execute(started_at)
        finally:
            self._state = CycleState.IDLE
            self._cycle_lock.release()

        self.cycles_run += 1
        self.last_result = result
        log_utils.log_message(result.summary_line(), result.log_level())
        return result

    def _execute(self, started_at: datetime) -> CycleResult:
        self._state = CycleState.REFRESHING_CREDENTIALS
        try:
            tokens = self._credentials.ensure_fresh_tokens()
        except Exception as exc:
            self._state = CycleState.REFRESH_FAILED
            log_utils.error(f"Credential refresh failed: {_describe_error(exc)}")
            return self._failure(started_at, exc)
        self._state = CycleState.REFRESH_OK

        self._state = CycleState.RUNNING_PIPELINE
        try:
            report = self._pipeline.run(tokens.bearer or "")
        except Exception as exc:
            self._state = CycleState.PIPELINE_FAILED
            log_utils.error(f"Pipeline run failed: {_describe_error(exc)}")
            return self._failure(started_at, exc)
        self._state = CycleState.PIPELINE_OK

        return CycleResult(
            success=True,
            state=self._state,
            started_at=started_at,
            finished_at=self._clock(),
            report=report,
        )

    def _failure(self, started_at: datetime, exc: Exception) -> CycleResult:
        return CycleResult(
            success=False,
            state=self._state,
            started_at=started_at,
            finished_at=self._clock(),
            error_kind=getattr(exc, "kind", exc.__class__.__name__),
            detail=_describe_error(exc),
        )


__all__ = ["CycleResult", "CycleState", "SyncScheduler"]
