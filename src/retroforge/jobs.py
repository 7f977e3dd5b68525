"""Tracking of in-flight asynchronous operations.

The orchestrator starts operations as ``asyncio`` tasks without blocking
the caller.  A front end polls :meth:`JobOrchestrator.is_busy` (to grey
out its triggers) and :meth:`JobOrchestrator.poll_events` (to react to
completions) instead of awaiting the jobs.  Failures are logged and
recorded on the :class:`Job`, never re-raised into a caller that may no
longer exist.

All mutation of the tracked set happens on the event-loop thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from retroforge.logging import get_logger

logger = get_logger("jobs")


class JobState(str, Enum):
    """Lifecycle of a job: pending → running → completed | failed."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobKind(str, Enum):
    GENERATE = "generate"
    CHECK_CREDITS = "check_credits"
    OTHER = "other"


@dataclass(eq=False)
class Job:
    """Handle to one tracked operation.

    Attributes:
        name: Human-readable label used in logs.
        kind: Which remote operation the job performs.
        state: Current lifecycle state.
        result: Return value once completed.
        error: The exception once failed.
    """

    name: str
    kind: JobKind = JobKind.OTHER
    state: JobState = JobState.PENDING
    result: Any = None
    error: BaseException | None = None
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        """True once the job reached a terminal state."""
        return self.state in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class JobEvent:
    """Completion notice placed on the orchestrator's event queue."""

    job: Job
    state: JobState


class JobOrchestrator:
    """Starts, tracks and reports asynchronous jobs."""

    def __init__(self) -> None:
        self._jobs: list[Job] = []
        self._events: asyncio.Queue[JobEvent] = asyncio.Queue()

    def submit(
        self,
        operation: Awaitable[Any],
        name: str,
        kind: JobKind = JobKind.OTHER,
    ) -> Job:
        """Schedule *operation* and return its handle immediately.

        Must be called from within a running event loop.

        Args:
            operation: Awaitable (usually a coroutine) to run.
            name: Label used in logs and events.
            kind: Operation category.

        Returns:
            The :class:`Job` in the ``PENDING`` state.
        """
        job = Job(name=name, kind=kind)
        loop = asyncio.get_running_loop()
        job.task = loop.create_task(self._run(job, operation), name=f"job:{name}")
        self._jobs.append(job)
        logger.debug("Submitted job %s (%s)", name, kind.value)
        return job

    async def _run(self, job: Job, operation: Awaitable[Any]) -> None:
        job.state = JobState.RUNNING
        try:
            job.result = await operation
        except Exception as exc:
            job.error = exc
            job.state = JobState.FAILED
            logger.error("Job %s failed: %s", job.name, exc, exc_info=exc)
        else:
            job.state = JobState.COMPLETED
            logger.debug("Job %s completed", job.name)
        finally:
            if job in self._jobs:
                self._jobs.remove(job)
            self._events.put_nowait(JobEvent(job=job, state=job.state))

    def _prune(self) -> None:
        self._jobs = [
            job for job in self._jobs if job.task is None or not job.task.done()
        ]

    def is_busy(self) -> bool:
        """True while at least one submitted job has not finished."""
        self._prune()
        return bool(self._jobs)

    @property
    def running_jobs(self) -> list[Job]:
        """Snapshot of the jobs still in flight."""
        self._prune()
        return list(self._jobs)

    def poll_events(self) -> list[JobEvent]:
        """Drain and return all completion events without blocking."""
        events: list[JobEvent] = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except asyncio.QueueEmpty:
                return events

    async def wait_idle(self) -> None:
        """Wait until every tracked job has finished."""
        while True:
            self._prune()
            tasks = [job.task for job in self._jobs if job.task is not None]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
