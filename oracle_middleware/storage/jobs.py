"""SQLite job state for price submission jobs."""
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..chain.base import InProgressFlags, JobRecorder

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    name TEXT PRIMARY KEY,
    last_submission_time REAL,
    last_reported_round INTEGER,
    in_submission INTEGER NOT NULL DEFAULT 0,
    updated_at REAL
)
"""


class JobStore(JobRecorder, InProgressFlags):
    """
    Per-feed job state shared by the processes submitting prices.

    The `in_submission` flag is set and cleared by whichever process owns a
    feed's submission; this store only reads it on the submit path.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the jobs table if needed."""
        if self._initialized:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            conn.execute(SCHEMA)

        self._initialized = True
        logger.debug(f"Job store initialized: {self.db_path}")

    def _upsert(self, feed: str, column: str, value) -> None:
        self.initialize()
        with self.get_connection() as conn:
            conn.execute(
                f"INSERT INTO jobs (name, {column}, updated_at) VALUES (?, ?, ?) "
                f"ON CONFLICT(name) DO UPDATE SET {column} = excluded.{column}, "
                f"updated_at = excluded.updated_at",
                (feed, value, time.time()),
            )

    def get_job(self, feed: str) -> Optional[dict]:
        """Return the job row for a feed, or None."""
        self.initialize()
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE name = ?", (feed,)).fetchone()
        return dict(row) if row else None

    def record_submission_attempt(self, feed: str, timestamp: float) -> None:
        self._upsert(feed, "last_submission_time", timestamp)

    def record_reported_round(self, feed: str, round_id: int) -> None:
        self._upsert(feed, "last_reported_round", round_id)

    def set_in_progress(self, feed: str, in_progress: bool) -> None:
        self._upsert(feed, "in_submission", 1 if in_progress else 0)

    def is_in_progress(self, feed: str) -> bool:
        job = self.get_job(feed)
        return bool(job and job["in_submission"])
