"""
In-process job store.

Holds everything in dictionaries; nothing survives a restart. Used for
ephemeral deployments (AWAKE_STORE=memory) and throughout the test suite.
"""

import itertools
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional

from awake.models import Job, RunLog
from awake.store.base import JobStore, DEFAULT_RUN_LOG_LIMIT, filter_updates


def _copy(job: Job) -> Job:
    # replace() is shallow; headers must not be shared with the stored job
    return replace(job, headers=dict(job.headers) if job.headers else None)


class MemoryJobStore(JobStore):
    """Dictionary-backed JobStore. Returned objects are copies."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: Dict[int, Job] = {}
        self._runs: Dict[int, List[RunLog]] = {}
        self._job_ids = itertools.count(1)
        self._run_ids = itertools.count(1)

    def get(self, job_id: int) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return _copy(job) if job else None

    def list_active(self) -> List[Job]:
        with self._lock:
            return [_copy(j) for j in self._jobs.values() if j.active]

    def list_all(self) -> List[Job]:
        with self._lock:
            return [_copy(self._jobs[k]) for k in sorted(self._jobs, reverse=True)]

    def insert(self, job: Job) -> Job:
        with self._lock:
            stored = _copy(replace(job, id=next(self._job_ids)))
            self._jobs[stored.id] = stored
            self._runs[stored.id] = []
            return _copy(stored)

    def update_schedule(self, job_id: int, last_run_at: int, next_run_at: int) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job:
                self._jobs[job_id] = replace(job, last_run_at=last_run_at, next_run_at=next_run_at)

    def update_fields(self, job_id: int, changes: Dict[str, Any]) -> Optional[Job]:
        fields = filter_updates(changes)
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return None
            if fields:
                job = _copy(replace(job, **fields))
                self._jobs[job_id] = job
            return _copy(job)

    def delete(self, job_id: int) -> bool:
        with self._lock:
            self._runs.pop(job_id, None)
            return self._jobs.pop(job_id, None) is not None

    def set_active(self, job_id: int, active: bool) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return None
            job = replace(job, active=bool(active))
            self._jobs[job_id] = job
            return _copy(job)

    def append_run_log(self, log: RunLog) -> RunLog:
        with self._lock:
            stored = replace(log, id=next(self._run_ids))
            self._runs.setdefault(log.job_id, []).append(stored)
            return replace(stored)

    def list_run_logs(self, job_id: int, limit: int = DEFAULT_RUN_LOG_LIMIT) -> List[RunLog]:
        with self._lock:
            runs = self._runs.get(job_id, [])
            return [replace(r) for r in reversed(runs[-limit:])] if limit > 0 else []
