"""Execution coordinator: runs one job through its lifecycle.

States: IDLE -> DISPATCHING -> COLLECTING -> DONE, or CANCELLED when
``cancel()`` was called while the job was in flight. Each directly
contacted host gets its own asyncio task; the coordinator waits for
all of them before collecting.
"""

import asyncio
import logging

from dispatch_mcp.models import Host, JobReport, JobState, RunResult, ScriptJob
from dispatch_mcp.services.dispatcher import ScriptDispatcher

logger = logging.getLogger(__name__)


class ExecutionCoordinator:
    """Sequences dispatch of a single job and collects its report."""

    def __init__(self, dispatcher: ScriptDispatcher) -> None:
        self.dispatcher = dispatcher
        self._state = JobState.IDLE
        self._tasks: dict[asyncio.Task[RunResult], Host] = {}
        self._cancel_requested = False

    @property
    def state(self) -> JobState:
        return self._state

    def _transition(self, new_state: JobState) -> None:
        logger.debug("Coordinator %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    async def submit(self, job: ScriptJob) -> JobReport:
        """Dispatch the job and wait for every host to finish.

        Raises:
            RuntimeError: If the coordinator is not idle
            JobValidationError: If the job is invalid (state stays IDLE)
            UnknownInterpreterError: If the interpreter is not registered
            asyncio.CancelledError: If the caller cancels this coroutine
        """
        if self._state is not JobState.IDLE:
            raise RuntimeError(f"Coordinator is {self._state.value}, not idle")

        self.dispatcher.validate(job)
        targets = self.dispatcher.targets(job)

        self._cancel_requested = False
        self._transition(JobState.DISPATCHING)
        logger.info(
            "Dispatching job=%s (%s) to %s",
            job.job_id,
            job.mode.value,
            ", ".join(h.name for h in targets),
        )
        self._tasks = {
            asyncio.create_task(
                self.dispatcher.dispatch_host(job, host),
                name=f"dispatch-{job.job_id}-{host.name}",
            ): host
            for host in targets
        }

        try:
            await asyncio.wait(self._tasks)
        except asyncio.CancelledError:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = {}
            self._transition(JobState.CANCELLED)
            raise

        self._transition(JobState.COLLECTING)
        try:
            report = self._collect(job)
        finally:
            self._tasks = {}
            self._transition(
                JobState.CANCELLED if self._cancel_requested else JobState.DONE
            )
        report.state = self._state

        logger.info(
            "Job job=%s %s: %d/%d host(s) succeeded, %d aborted",
            job.job_id,
            report.state.value,
            sum(1 for r in report.results if r.succeeded),
            len(report.results) + len(report.aborted),
            len(report.aborted),
        )
        return report

    def _collect(self, job: ScriptJob) -> JobReport:
        report = JobReport(job_id=job.job_id, mode=job.mode, state=JobState.COLLECTING)
        for task, host in self._tasks.items():
            if task.cancelled():
                report.aborted.append(host)
                continue
            exc = task.exception()
            if exc is not None:
                # dispatch_host converts host failures into RunResults;
                # anything else is a bug and must surface
                raise exc
            report.results.append(task.result())
        return report

    def cancel(self) -> int:
        """Abort in-flight host operations; finished results are kept.

        Returns:
            Number of host operations that were still running
        """
        if self._state is not JobState.DISPATCHING:
            logger.debug("Cancel ignored in state %s", self._state.value)
            return 0

        self._cancel_requested = True
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        logger.warning("Cancelling job: %d host operation(s) aborted", len(pending))
        return len(pending)

    def reset(self) -> None:
        """Return a finished coordinator to IDLE so it can run another job.

        Raises:
            RuntimeError: If a job is still in flight
        """
        if self._state in (JobState.DISPATCHING, JobState.COLLECTING):
            raise RuntimeError(f"Cannot reset while {self._state.value}")
        self._transition(JobState.IDLE)


async def run_job(dispatcher: ScriptDispatcher, job: ScriptJob) -> JobReport:
    """Run a job on a fresh coordinator and return its report."""
    return await ExecutionCoordinator(dispatcher).submit(job)
