"""
SQLite-backed job store.

Each operation opens its own connection, so the store can be shared
freely between timer threads and request handlers.
"""

import sqlite3
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from contextlib import contextmanager

from awake.errors import StoreError
from awake.models import Job, RunLog
from awake.store.base import JobStore, DEFAULT_RUN_LOG_LIMIT, filter_updates


logger = logging.getLogger("awake.store")


def _row_to_job(row: sqlite3.Row) -> Job:
    return Job(
        id=row['id'],
        url=row['url'],
        method=row['method'],
        headers=json.loads(row['headers_json']) if row['headers_json'] else None,
        body=row['body'],
        body_is_json=bool(row['body_is_json']),
        interval_ms=row['interval_ms'],
        max_retries=row['max_retries'],
        retry_delay_ms=row['retry_delay_ms'],
        created_at=row['created_at'],
        last_run_at=row['last_run_at'],
        next_run_at=row['next_run_at'],
        active=bool(row['active']),
    )


def _row_to_run(row: sqlite3.Row) -> RunLog:
    return RunLog(
        id=row['id'],
        job_id=row['job_id'],
        started_at=row['started_at'],
        finished_at=row['finished_at'],
        success=bool(row['success']),
        status_code=row['status_code'],
        error_message=row['error_message'],
        attempt_count=row['attempt_count'],
    )


class SQLiteJobStore(JobStore):
    """
    JobStore persisted in a single sqlite file.

    Usage:
        store = SQLiteJobStore(Path("data.sqlite"))
        job = store.get(1)
    """

    def __init__(self, db_path: Path):
        """
        Initialize the store and create tables if needed.

        Args:
            db_path: Path to the database file
        """
        self.db_path = Path(db_path)
        self.init_database()
        logger.info(f"Using job database {self.db_path}")

    @contextmanager
    def get_db_connection(self):
        """
        Context manager for database connections.

        Yields:
            sqlite3 connection with row factory set to Row

        Raises:
            StoreError: on any sqlite failure inside the block
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def init_database(self) -> None:
        """Initialize the jobs database with required tables."""
        with self.get_db_connection() as conn:
            cursor = conn.cursor()

            # Job definitions table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL,
                    method TEXT NOT NULL,
                    headers_json TEXT,
                    body TEXT,
                    body_is_json INTEGER NOT NULL DEFAULT 0,
                    interval_ms INTEGER NOT NULL,
                    max_retries INTEGER NOT NULL DEFAULT 0,
                    retry_delay_ms INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL,
                    last_run_at INTEGER,
                    next_run_at INTEGER,
                    active INTEGER NOT NULL DEFAULT 1
                )
            """)

            # Execution history table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS run_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id INTEGER NOT NULL,
                    started_at INTEGER NOT NULL,
                    finished_at INTEGER NOT NULL,
                    success INTEGER NOT NULL,
                    status_code INTEGER,
                    error_message TEXT,
                    attempt_count INTEGER NOT NULL,
                    FOREIGN KEY (job_id) REFERENCES jobs(id)
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_jobs_active ON jobs(active)")
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_run_logs_job_started "
                "ON run_logs(job_id, started_at)"
            )

            conn.commit()

    # --- Job operations ---

    def get(self, job_id: int) -> Optional[Job]:
        with self.get_db_connection() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
            return _row_to_job(row) if row else None

    def list_active(self) -> List[Job]:
        with self.get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM jobs WHERE active = 1").fetchall()
            return [_row_to_job(row) for row in rows]

    def list_all(self) -> List[Job]:
        with self.get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM jobs ORDER BY id DESC").fetchall()
            return [_row_to_job(row) for row in rows]

    def insert(self, job: Job) -> Job:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO jobs (
                    url, method, headers_json, body, body_is_json, interval_ms,
                    max_retries, retry_delay_ms, created_at, last_run_at,
                    next_run_at, active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                job.url, job.method,
                json.dumps(job.headers) if job.headers else None,
                job.body, 1 if job.body_is_json else 0, job.interval_ms,
                job.max_retries, job.retry_delay_ms, job.created_at,
                job.last_run_at, job.next_run_at, 1 if job.active else 0
            ))
            conn.commit()
            job_id = cursor.lastrowid

        return self.get(job_id)

    def update_schedule(self, job_id: int, last_run_at: int, next_run_at: int) -> None:
        with self.get_db_connection() as conn:
            conn.execute(
                "UPDATE jobs SET last_run_at = ?, next_run_at = ? WHERE id = ?",
                (last_run_at, next_run_at, job_id)
            )
            conn.commit()

    def update_fields(self, job_id: int, changes: Dict[str, Any]) -> Optional[Job]:
        fields = filter_updates(changes)
        if not fields:
            return self.get(job_id)

        # headers are stored as JSON text, booleans as 0/1
        if 'headers' in fields:
            headers = fields.pop('headers')
            fields['headers_json'] = json.dumps(headers) if headers else None
        if 'body_is_json' in fields:
            fields['body_is_json'] = 1 if fields['body_is_json'] else 0

        set_clause = ", ".join(f"{k} = ?" for k in fields)
        values = list(fields.values())

        with self.get_db_connection() as conn:
            conn.execute(f"UPDATE jobs SET {set_clause} WHERE id = ?", values + [job_id])
            conn.commit()

        return self.get(job_id)

    def delete(self, job_id: int) -> bool:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM run_logs WHERE job_id = ?", (job_id,))
            cursor.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
            conn.commit()
            return cursor.rowcount > 0

    def set_active(self, job_id: int, active: bool) -> Optional[Job]:
        with self.get_db_connection() as conn:
            conn.execute(
                "UPDATE jobs SET active = ? WHERE id = ?",
                (1 if active else 0, job_id)
            )
            conn.commit()
        return self.get(job_id)

    # --- Run history operations ---

    def append_run_log(self, log: RunLog) -> RunLog:
        with self.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO run_logs (
                    job_id, started_at, finished_at, success,
                    status_code, error_message, attempt_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                log.job_id, log.started_at, log.finished_at,
                1 if log.success else 0, log.status_code,
                log.error_message, log.attempt_count
            ))
            conn.commit()

            row = conn.execute(
                "SELECT * FROM run_logs WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return _row_to_run(row)

    def list_run_logs(self, job_id: int, limit: int = DEFAULT_RUN_LOG_LIMIT) -> List[RunLog]:
        with self.get_db_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM run_logs
                WHERE job_id = ?
                ORDER BY started_at DESC, id DESC
                LIMIT ?
            """, (job_id, limit)).fetchall()
            return [_row_to_run(row) for row in rows]
