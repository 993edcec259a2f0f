"""Single-consumer job queue feeding change events to the reconciler.

Exactly one job runs at a time, so two runs never touch the same PR's
comments concurrently and each run sees the previous run's writes.
Delivery is at-least-once: a job interrupted by a crash is re-queued on the
next start, which is safe because reconciliation replaces rather than
accumulates comments.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

from prexplain_core.models import ChangeEvent
from prexplain_store.base import BaseJobStore
from prexplain_store.memory import MemoryJobStore
from prexplain_store.models import Job, JobState
from prexplain_store.sqlite import SQLiteJobStore

logger = logging.getLogger(__name__)

Handler = Callable[[ChangeEvent], Awaitable[Any]]


def build_store(config: dict) -> BaseJobStore:
    """SQLite when `queue_path` is set (the default), otherwise in-memory."""
    path = config.get("queue_path")
    if path:
        return SQLiteJobStore(db_path=path)
    return MemoryJobStore()


class JobQueue:
    def __init__(self, store: BaseJobStore, handler: Handler, max_attempts: int = 1, retry_delay: float = 1.0):
        self.store = store
        self._handler = handler
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None

    def enqueue(self, event: ChangeEvent) -> Job:
        job = self.store.enqueue(event.to_dict())
        logger.info("Queued job %d for %s#%d @ %s", job.id, event.full_name, event.pr_number, event.head_sha[:7])
        self._wakeup.set()
        return job

    async def process_next(self) -> Job | None:
        """Run the oldest queued job. Returns None when the queue is empty."""
        job = self.store.claim_next()
        if job is None:
            return None

        try:
            event = ChangeEvent.from_dict(job.event)
        except (KeyError, TypeError, ValueError) as e:
            logger.exception("Job %d has an unreadable event, marking it failed", job.id)
            self.store.mark_failed(job.id, f"Unreadable event: {e}")
            job.state, job.error = JobState.FAILED, f"Unreadable event: {e}"
            return job

        try:
            report = await self._handler(event)
        except Exception as e:
            logger.exception(
                "Job %d failed (attempt %d/%d) for %s#%d @ %s: %s",
                job.id,
                job.attempts,
                self._max_attempts,
                event.full_name,
                event.pr_number,
                event.head_sha,
                e,
            )
            self.store.mark_failed(job.id, str(e))
            job.state, job.error = JobState.FAILED, str(e)
            if job.attempts < self._max_attempts and self.store.requeue(job.id):
                job.state, job.error = JobState.QUEUED, None
            return job

        failures = getattr(report, "failures", None)
        if failures:
            logger.warning("Job %d finished with %d comment failure(s)", job.id, len(failures))
        self.store.mark_done(job.id)
        job.state = JobState.DONE
        return job

    async def drain(self) -> int:
        """Process queued jobs until none are left. Returns how many ran."""
        count = 0
        while await self.process_next() is not None:
            count += 1
        return count

    async def run(self) -> None:
        """Worker loop. Store errors are logged and retried, never fatal."""
        while True:
            self._wakeup.clear()
            try:
                await self.drain()
            except Exception:
                logger.exception("Queue store error, retrying in %ss", self._retry_delay)
                await asyncio.sleep(self._retry_delay)
                continue
            await self._wakeup.wait()

    def start(self) -> None:
        self.store.recover_interrupted()
        self._task = asyncio.create_task(self.run())
        logger.info("Queue worker started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Queue worker stopped")

    def close(self) -> None:
        self.store.close()
