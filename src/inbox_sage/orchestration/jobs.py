"""Bounded FIFO job queue drained by a single loop."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from inbox_sage.core.datetime_utils import utc_now
from inbox_sage.core.interfaces import InvalidJobTransition, JobQueueFull
from inbox_sage.core.models import AnalysisResult, JobKind, JobStatus, ProcessingJob

LOGGER = logging.getLogger(__name__)

JobWork = Callable[[], Awaitable[AnalysisResult]]

_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    "pending": frozenset({"processing"}),
    "processing": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def transition_job(
    job: ProcessingJob,
    status: JobStatus,
    *,
    result: AnalysisResult | None = None,
    error: str | None = None,
    now: datetime | None = None,
) -> ProcessingJob:
    """Move ``job`` forward to ``status``, stamping completion when finished."""
    if status not in _TRANSITIONS[job.status]:
        raise InvalidJobTransition(
            f"Job {job.id} cannot move from {job.status} to {status}"
        )
    job.status = status
    if status == "completed":
        job.result = result
    elif status == "failed":
        job.error = error
    if status in ("completed", "failed"):
        job.completed_at = now or utc_now()
    return job


@dataclass(slots=True)
class QueuedJob:
    """A job waiting in the queue with the work it will run."""

    job: ProcessingJob
    work: JobWork
    outcome: asyncio.Future[AnalysisResult]


class JobQueue:
    """Serialise analysis work and keep a record of every job.

    Jobs run strictly in arrival order. Only one drain loop is ever active;
    enqueuing while it runs just extends its backlog.
    """

    def __init__(
        self,
        *,
        max_pending: int = 100,
        retention_seconds: int = 60 * 60,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._max_pending = max_pending
        self._retention = timedelta(seconds=retention_seconds)
        self._clock = clock
        self._pending: deque[QueuedJob] = deque()
        self._jobs: dict[str, ProcessingJob] = {}
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def pending_count(self) -> int:
        """Number of jobs waiting to run."""
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        """Whether the drain loop is active."""
        return self._drain_task is not None and not self._drain_task.done()

    def jobs(self) -> list[ProcessingJob]:
        """Return every tracked job, oldest first."""
        return list(self._jobs.values())

    def get(self, job_id: str) -> ProcessingJob | None:
        """Return the job called ``job_id`` if it is still tracked."""
        return self._jobs.get(job_id)

    def enqueue(
        self, message_id: str, work: JobWork, *, kind: JobKind = "summary"
    ) -> QueuedJob:
        """Append a ``pending`` job and make sure the drain loop is running.

        Must be called from a running event loop. Raises
        :class:`JobQueueFull` when the backlog is at capacity.
        """
        if len(self._pending) >= self._max_pending:
            raise JobQueueFull(
                f"Job queue is full ({self._max_pending} pending jobs)"
            )
        loop = asyncio.get_running_loop()
        job = ProcessingJob(
            id=f"job_{uuid.uuid4().hex}",
            message_id=message_id,
            kind=kind,
            created_at=self._clock(),
        )
        queued = QueuedJob(job=job, work=work, outcome=loop.create_future())
        self._pending.append(queued)
        self._jobs[job.id] = job
        LOGGER.debug("Queued %s for message %s", job.id, message_id)
        self._ensure_draining(loop)
        return queued

    def dequeue(self) -> QueuedJob | None:
        """Pop the oldest pending job and mark it ``processing``."""
        if not self._pending:
            return None
        queued = self._pending.popleft()
        transition_job(queued.job, "processing")
        return queued

    async def submit(
        self, message_id: str, work: JobWork, *, kind: JobKind = "summary"
    ) -> AnalysisResult:
        """Queue ``work`` and wait for its outcome."""
        queued = self.enqueue(message_id, work, kind=kind)
        return await queued.outcome

    def sweep_expired(self, now: datetime | None = None) -> int:
        """Forget jobs older than the retention window unless they are running."""
        cutoff = (now or self._clock()) - self._retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.created_at < cutoff and job.status != "processing"
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            LOGGER.info("Swept %d expired jobs", len(expired))
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep expired jobs every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep_expired()

    def _ensure_draining(self, loop: asyncio.AbstractEventLoop) -> None:
        task = self._drain_task
        # A task left behind by a closed loop can never finish; replace it.
        if task is not None and not task.done() and task.get_loop() is loop:
            return
        self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while (queued := self.dequeue()) is not None:
            await self._run(queued)

    async def _run(self, queued: QueuedJob) -> None:
        job = queued.job
        if queued.outcome.get_loop().is_closed():
            transition_job(
                job, "failed", error="Caller's event loop closed", now=self._clock()
            )
            return
        try:
            result = await queued.work()
        except Exception as exc:  # noqa: BLE001
            transition_job(job, "failed", error=str(exc), now=self._clock())
            LOGGER.error("Job %s for message %s failed: %s", job.id, job.message_id, exc)
            if not queued.outcome.done():
                queued.outcome.set_exception(exc)
            return

        transition_job(job, "completed", result=result, now=self._clock())
        LOGGER.debug("Job %s completed", job.id)
        if not queued.outcome.done():
            queued.outcome.set_result(result)


__all__ = [
    "InvalidJobTransition",
    "JobQueue",
    "JobQueueFull",
    "JobWork",
    "QueuedJob",
    "transition_job",
]
