"""SQLiteJobStore — durable local queue for webhook jobs.

Jobs survive a restart: anything QUEUED is picked up again, and anything
caught mid-run in PROCESSING is put back by recover_interrupted().

Schema:
  jobs — one row per accepted change event, claimed in id order.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from prexplain_store.base import BaseJobStore
from prexplain_store.models import Job, JobState, utc_now

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    event_json  TEXT NOT NULL,
    state       TEXT NOT NULL DEFAULT 'queued',
    attempts    INTEGER DEFAULT 0,
    error       TEXT,
    created_at  TEXT,
    updated_at  TEXT
);
CREATE INDEX IF NOT EXISTS idx_jobs_state ON jobs (state, id);
"""


class SQLiteJobStore(BaseJobStore):
    """Stores queue jobs in a local SQLite database file.

    The database file path defaults to `.prexplain-queue.db` in the current
    working directory. Configure via .prexplain.yml: `queue_path: /path/to/queue.db`.
    """

    def __init__(self, db_path: str = ".prexplain-queue.db"):
        # The web handler and the worker share one event loop, but the ASGI
        # server may call in from its own thread.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def enqueue(self, event: dict) -> Job:
        now = utc_now()
        cursor = self._conn.execute(
            "INSERT INTO jobs (event_json, state, attempts, created_at, updated_at) VALUES (?, ?, 0, ?, ?)",
            (json.dumps(event), JobState.QUEUED.value, now, now),
        )
        self._conn.commit()
        return Job(id=cursor.lastrowid, event=event, created_at=now, updated_at=now)

    def claim_next(self) -> Job | None:
        row = self._conn.execute(
            "SELECT * FROM jobs WHERE state=? ORDER BY id LIMIT 1",
            (JobState.QUEUED.value,),
        ).fetchone()
        if row is None:
            return None
        now = utc_now()
        self._conn.execute(
            "UPDATE jobs SET state=?, attempts=attempts+1, updated_at=? WHERE id=?",
            (JobState.PROCESSING.value, now, row["id"]),
        )
        self._conn.commit()
        job = self._row_to_job(row)
        job.state = JobState.PROCESSING
        job.attempts += 1
        job.updated_at = now
        return job

    def mark_done(self, job_id: int) -> None:
        self._set_state(job_id, JobState.DONE, None)

    def mark_failed(self, job_id: int, error: str) -> None:
        self._set_state(job_id, JobState.FAILED, error)

    def requeue(self, job_id: int) -> bool:
        cursor = self._conn.execute(
            "UPDATE jobs SET state=?, error=NULL, updated_at=? WHERE id=? AND state=?",
            (JobState.QUEUED.value, utc_now(), job_id, JobState.FAILED.value),
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def recover_interrupted(self) -> int:
        cursor = self._conn.execute(
            "UPDATE jobs SET state=?, updated_at=? WHERE state=?",
            (JobState.QUEUED.value, utc_now(), JobState.PROCESSING.value),
        )
        self._conn.commit()
        if cursor.rowcount:
            logger.warning("Re-queued %d job(s) interrupted mid-run", cursor.rowcount)
        return cursor.rowcount

    def list_jobs(self, state: JobState | None = None, limit: int | None = None) -> list[Job]:
        query = "SELECT * FROM jobs"
        params: list = []
        if state is not None:
            query += " WHERE state=?"
            params.append(JobState(state).value)
        query += " ORDER BY id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return [self._row_to_job(r) for r in self._conn.execute(query, params).fetchall()]

    def close(self) -> None:
        self._conn.close()

    def _set_state(self, job_id: int, state: JobState, error: str | None) -> None:
        self._conn.execute(
            "UPDATE jobs SET state=?, error=?, updated_at=? WHERE id=?",
            (state.value, error, utc_now(), job_id),
        )
        self._conn.commit()

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> Job:
        return Job(
            id=row["id"],
            event=json.loads(row["event_json"]),
            state=JobState(row["state"]),
            attempts=row["attempts"] or 0,
            error=row["error"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
