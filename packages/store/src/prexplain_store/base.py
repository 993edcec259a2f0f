"""Abstract job store interface.

The queue worker depends on BaseJobStore, not on a concrete backend, so
the durable SQLite store and the in-memory store are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prexplain_store.models import Job, JobState


class BaseJobStore(ABC):
    """Ordered job storage with a single consumer.

    Jobs are claimed strictly in insertion order. Implementations need not
    guard against concurrent consumers: the queue runs exactly one.
    """

    @abstractmethod
    def enqueue(self, event: dict) -> Job:
        """Persist a new QUEUED job and return it."""

    @abstractmethod
    def claim_next(self) -> Job | None:
        """Move the oldest QUEUED job to PROCESSING and return it, or None."""

    @abstractmethod
    def mark_done(self, job_id: int) -> None:
        """Record a successful run."""

    @abstractmethod
    def mark_failed(self, job_id: int, error: str) -> None:
        """Record a failed run with its error message."""

    @abstractmethod
    def requeue(self, job_id: int) -> bool:
        """Put a FAILED job back in the queue. Returns False if it isn't FAILED."""

    @abstractmethod
    def recover_interrupted(self) -> int:
        """Re-queue jobs left in PROCESSING by a crash. Returns how many."""

    @abstractmethod
    def list_jobs(self, state: JobState | None = None, limit: int | None = None) -> list[Job]:
        """Return jobs oldest first, optionally filtered by state."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
