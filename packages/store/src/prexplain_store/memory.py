"""In-memory job store — used when `queue_path` is unset, and in tests.

Jobs are lost on restart. The behaviour otherwise matches SQLiteJobStore.
"""

from __future__ import annotations

from prexplain_store.base import BaseJobStore
from prexplain_store.models import Job, JobState, utc_now


class MemoryJobStore(BaseJobStore):
    def __init__(self):
        self._jobs: dict[int, Job] = {}
        self._next_id = 1

    def enqueue(self, event: dict) -> Job:
        job = Job(id=self._next_id, event=dict(event))
        self._jobs[job.id] = job
        self._next_id += 1
        return job

    def claim_next(self) -> Job | None:
        for job in self._jobs.values():
            if job.state is JobState.QUEUED:
                job.state = JobState.PROCESSING
                job.attempts += 1
                job.updated_at = utc_now()
                return job
        return None

    def mark_done(self, job_id: int) -> None:
        self._update(job_id, JobState.DONE, None)

    def mark_failed(self, job_id: int, error: str) -> None:
        self._update(job_id, JobState.FAILED, error)

    def requeue(self, job_id: int) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.state is not JobState.FAILED:
            return False
        self._update(job_id, JobState.QUEUED, None)
        return True

    def recover_interrupted(self) -> int:
        interrupted = [j for j in self._jobs.values() if j.state is JobState.PROCESSING]
        for job in interrupted:
            self._update(job.id, JobState.QUEUED, job.error)
        return len(interrupted)

    def list_jobs(self, state: JobState | None = None, limit: int | None = None) -> list[Job]:
        jobs = [j for j in self._jobs.values() if state is None or j.state is JobState(state)]
        return jobs[:limit] if limit is not None else jobs

    def _update(self, job_id: int, state: JobState, error: str | None) -> None:
        job = self._jobs[job_id]
        job.state = state
        job.error = error
        job.updated_at = utc_now()
