"""Tick-driven progress model for a running job."""

from __future__ import annotations

import asyncio
import contextlib
import random
from typing import Any, Callable, Optional

from dubflow.config.settings import TrackerConfig
from dubflow.models.session import Job, JobStatus, Step, StepStatus
from dubflow.utils.logging import get_logger

logger = get_logger("tracker.progress")

SIMULATED_ERROR_MESSAGE = "Connection timeout. Retrying..."


class DependencyNotReadyError(Exception):
    """A step was started before its predecessor completed."""

    def __init__(self, step_id: str, predecessor_id: str) -> None:
        self.step_id = step_id
        self.predecessor_id = predecessor_id
        super().__init__(
            f"Step {step_id!r} cannot start before {predecessor_id!r} has completed"
        )


def _is_current(task: asyncio.Task) -> bool:
    try:
        return task is asyncio.current_task()
    except RuntimeError:
        # No running event loop
        return False


def format_countdown(units: int) -> str:
    """Format a countdown as m:ss."""
    minutes, seconds = divmod(max(0, units), 60)
    return f"{minutes}:{seconds:02d}"


class JobProgressTracker:
    """
    Drives the ordered steps of a running job, one tick at a time.

    Each tick advances every eligible step by a random increment. A step
    starts only once its predecessor has completed. Overall progress moves
    by one point per tick, holds at 99 and snaps to 100 on the tick where
    every step has completed; ``on_complete`` fires once on that tick and
    ticking stops. A failed step reports through ``on_error`` and stays
    failed; ticking continues.

    ``tick`` is the only place where job state changes. ``start`` runs it
    periodically on the event loop; ``cancel``/``stop`` end that task and
    no tick is applied afterwards.
    """

    def __init__(
        self,
        job: Job,
        config: Optional[TrackerConfig] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            job: Job whose steps are advanced
            config: Tick interval, countdown and increment bounds
            on_complete: Called once when every step has completed
            on_error: Called with the step message whenever a step fails
            rng: Random source for increments and simulated failures
        """
        self.job = job
        self.config = config or TrackerConfig()
        self.on_complete = on_complete
        self.on_error = on_error
        self._rng = rng or random.Random()

        self.overall_progress = 0
        self.time_remaining = self.config.estimated_time_units
        self.ticks = 0

        self._halted = False
        self._complete_fired = False
        self._queued_failures: list[tuple[str, str]] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def steps(self) -> list[Step]:
        return self.job.steps

    @property
    def is_complete(self) -> bool:
        return self.job.status == JobStatus.COMPLETE

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def running(self) -> bool:
        """True while a ticking task is scheduled."""
        return self._task is not None and not self._task.done()

    def tick(self) -> bool:
        """
        Advance the job by one tick.

        Returns:
            True if the tracker keeps ticking, False once halted
        """
        if self._halted:
            return False

        self.ticks += 1
        self._apply_queued_failures()

        for index, step in enumerate(self.steps):
            if step.status.is_inert():
                continue

            if step.status == StepStatus.PENDING:
                if not self._predecessor_completed(index):
                    continue
                self._begin(index)

            if self._should_simulate_failure():
                self._fail(step, SIMULATED_ERROR_MESSAGE)
                continue

            increment = self._rng.randint(self.config.min_increment, self.config.max_increment)
            step.progress = min(100, step.progress + increment)
            if step.progress >= 100:
                step.status = StepStatus.COMPLETED
                logger.info("step_completed", step=step.id, tick=self.ticks)

        if self.job.all_completed:
            self._finish()
            return False

        self.overall_progress = min(99, self.overall_progress + 1)
        self.time_remaining = max(0, self.time_remaining - 1)
        return True

    def fail_step(self, step_id: str, message: str) -> None:
        """
        Report a failure for a step; it is applied on the next tick.

        Failures for completed steps, and for pending steps whose
        predecessor has not completed, are dropped when applied.

        Raises:
            KeyError: If the job has no such step
        """
        self.job.get_step(step_id)
        self._queued_failures.append((step_id, message))

    def _apply_queued_failures(self) -> None:
        queued, self._queued_failures = self._queued_failures, []
        for step_id, message in queued:
            step = self.job.get_step(step_id)
            if step.status.is_inert():
                logger.debug("failure_ignored", step=step_id, status=step.status.value)
                continue
            index = self.steps.index(step)
            if step.status == StepStatus.PENDING and not self._predecessor_completed(index):
                # A gated step never leaves pending
                logger.debug("failure_ignored", step=step_id, status=step.status.value)
                continue
            self._fail(step, message)

    def _predecessor_completed(self, index: int) -> bool:
        return index == 0 or self.steps[index - 1].status == StepStatus.COMPLETED

    def _begin(self, index: int) -> None:
        step = self.steps[index]
        if not self._predecessor_completed(index):
            raise DependencyNotReadyError(step.id, self.steps[index - 1].id)
        step.status = StepStatus.PROCESSING
        logger.info("step_started", step=step.id, tick=self.ticks)

    def _should_simulate_failure(self) -> bool:
        rate = self.config.simulated_error_rate
        return rate > 0 and self._rng.random() < rate

    def _fail(self, step: Step, message: str) -> None:
        step.status = StepStatus.ERROR
        step.message = message
        logger.warning("step_failed", step=step.id, message=message, tick=self.ticks)
        if self.on_error is not None:
            self.on_error(message)

    def _finish(self) -> None:
        self.overall_progress = 100
        self.time_remaining = 0
        self.job.status = JobStatus.COMPLETE
        self._halted = True
        logger.info("job_completed", project_id=self.job.project_id, ticks=self.ticks)

        if not self._complete_fired:
            self._complete_fired = True
            if self.on_complete is not None:
                self.on_complete()

    def abandon(self) -> None:
        """Give up on the job: stop ticking and mark it failed."""
        self.cancel()
        if not self.job.status.is_terminal():
            self.job.status = JobStatus.ERROR
        logger.warning("job_abandoned", project_id=self.job.project_id, ticks=self.ticks)

    async def run(self) -> None:
        """Tick every ``tick_interval`` seconds until halted."""
        while not self._halted:
            await asyncio.sleep(self.config.tick_interval)
            self.tick()

    def start(self) -> asyncio.Task:
        """Schedule periodic ticking on the running event loop."""
        if self.running:
            return self._task
        if self._halted:
            raise RuntimeError("Tracker has been halted and cannot be restarted")

        self._task = asyncio.create_task(
            self.run(),
            name=f"progress-{self.job.project_id}",
        )
        logger.debug("tracker_started", project_id=self.job.project_id)
        return self._task

    def cancel(self) -> None:
        """Stop ticking immediately; no further tick is applied."""
        self._halted = True
        task = self._task
        if task is not None and not task.done() and not _is_current(task):
            task.cancel()
            logger.debug("tracker_cancelled", project_id=self.job.project_id)

    async def stop(self) -> None:
        """Cancel ticking and wait for the task to finish."""
        self.cancel()
        task = self._task
        if task is not None and not _is_current(task):
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def wait(self) -> None:
        """Wait until ticking ends (completion or cancellation)."""
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def __aenter__(self) -> "JobProgressTracker":
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    def snapshot(self) -> dict:
        """Current progress for display."""
        return {
            "project_id": self.job.project_id,
            "status": self.job.status.value,
            "overall_progress": self.overall_progress,
            "time_remaining": self.time_remaining,
            "countdown": format_countdown(self.time_remaining),
            "steps": [step.to_dict() for step in self.steps],
        }
