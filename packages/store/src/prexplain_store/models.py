"""Queue job data models.

Jobs carry the change event as a plain dict so the store layer has no
knowledge of prexplain_core types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Job:
    """One queued change event and its processing state."""

    id: int
    event: dict
    state: JobState = JobState.QUEUED
    attempts: int = 0
    error: str | None = None
    created_at: str = field(default_factory=utc_now)  # ISO-8601 UTC timestamp
    updated_at: str = field(default_factory=utc_now)
