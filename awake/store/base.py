"""
Abstract job store consumed by the engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from awake.models import Job, RunLog


# Columns a partial update may touch
UPDATABLE_FIELDS = frozenset({
    'url', 'method', 'headers', 'body', 'body_is_json',
    'interval_ms', 'max_retries', 'retry_delay_ms', 'next_run_at',
})

DEFAULT_RUN_LOG_LIMIT = 200


class JobStore(ABC):
    """
    Durable mapping of job id to Job plus an append-only run log.

    Implementations must be safe for concurrent use from many threads
    operating on distinct job ids. Failures are raised as StoreError;
    a missing job is reported as None (or False for delete), never raised.
    """

    @abstractmethod
    def get(self, job_id: int) -> Optional[Job]:
        """Get a single job by ID."""

    @abstractmethod
    def list_active(self) -> List[Job]:
        """All jobs with active = True, in no particular order."""

    @abstractmethod
    def list_all(self) -> List[Job]:
        """All jobs, newest id first."""

    @abstractmethod
    def insert(self, job: Job) -> Job:
        """Persist a new job and return it with its assigned id."""

    @abstractmethod
    def update_schedule(self, job_id: int, last_run_at: int, next_run_at: int) -> None:
        """Record the outcome timestamps of a run."""

    @abstractmethod
    def update_fields(self, job_id: int, changes: Dict[str, Any]) -> Optional[Job]:
        """Apply a partial update restricted to UPDATABLE_FIELDS."""

    @abstractmethod
    def delete(self, job_id: int) -> bool:
        """Delete a job and its history."""

    @abstractmethod
    def set_active(self, job_id: int, active: bool) -> Optional[Job]:
        """Enable or disable a job."""

    @abstractmethod
    def append_run_log(self, log: RunLog) -> RunLog:
        """Append one run record and return it with its assigned id."""

    @abstractmethod
    def list_run_logs(self, job_id: int, limit: int = DEFAULT_RUN_LOG_LIMIT) -> List[RunLog]:
        """Get recent runs for a job, newest first."""

    def close(self) -> None:
        """Release any held resources."""


def filter_updates(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Filter to allowed fields."""
    return {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
