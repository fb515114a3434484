"""
Job lifecycle operations exposed to the API layer.

Every mutation runs inside the scheduler's per-job critical section so
that store writes and wake changes for one job never interleave with a
run of the same job.
"""

import math
import logging
from typing import Any, Callable, Dict, List, Optional

from awake.errors import JobNotFoundError, JobValidationError
from awake.models import Job, JobSpec, RunLog, normalize_method, now_ms, serialize_body
from awake.runner.scheduler import Scheduler
from awake.store.base import JobStore, DEFAULT_RUN_LOG_LIMIT


logger = logging.getLogger("awake.service")

# Fields a caller may change through update()
EDITABLE_FIELDS = ('url', 'method', 'headers', 'body', 'interval_ms', 'max_retries', 'retry_delay_ms')

# One year. Longer timer waits or retry sleeps can overflow the platform clock
MAX_DELAY_MS = 365 * 24 * 60 * 60 * 1000

# Largest value a sqlite INTEGER column holds
MAX_STORED_INT = 2 ** 63 - 1


def _as_int(value: Any, name: str, minimum: int, maximum: int = MAX_STORED_INT) -> int:
    if isinstance(value, bool) or value is None:
        raise JobValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise JobValidationError(f"{name} must be a number")
    if not math.isfinite(number) or number != int(number):
        raise JobValidationError(f"{name} must be a whole number")
    if number < minimum:
        bound = "positive" if minimum > 0 else "non-negative"
        raise JobValidationError(f"{name} must be {bound}")
    if number > maximum:
        raise JobValidationError(f"{name} must be at most {maximum}")
    return int(number)


def _check_url(url: Any) -> str:
    if not isinstance(url, str) or not url.strip():
        raise JobValidationError("url is required")
    return url.strip()


def _check_headers(headers: Any) -> Optional[Dict[str, str]]:
    if headers is None:
        return None
    if not isinstance(headers, dict):
        raise JobValidationError("headers must be an object")
    for key, value in headers.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise JobValidationError("header names and values must be strings")
    return dict(headers) or None


def _check_method(method: Any) -> str:
    if method is not None and not isinstance(method, str):
        raise JobValidationError("method must be a string")
    return normalize_method(method)


class JobService:
    """
    Create, update, enable, disable and delete jobs, keeping the
    scheduler's wake table consistent with each change.

    Usage:
        service = JobService(store, scheduler)
        job = service.create(JobSpec(url="https://example.com", interval_ms=60000))
        service.disable(job.id)
    """

    def __init__(
        self,
        store: JobStore,
        scheduler: Scheduler,
        clock: Callable[[], int] = now_ms,
        run_log_limit: int = DEFAULT_RUN_LOG_LIMIT
    ):
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.run_log_limit = run_log_limit

    def create(self, spec: JobSpec) -> Job:
        """
        Validate, persist and arm a new job.

        Raises:
            JobValidationError: on a missing url, non-positive interval,
                negative retry count or delay, or a number out of range
        """
        url = _check_url(spec.url)
        interval_ms = _as_int(spec.interval_ms, "intervalMs", 1, MAX_DELAY_MS)
        max_retries = _as_int(spec.max_retries, "maxRetries", 0)
        retry_delay_ms = _as_int(spec.retry_delay_ms, "retryDelayMs", 0, MAX_DELAY_MS)
        body, body_is_json = serialize_body(spec.body)

        created_at = self.clock()
        job = self.store.insert(Job(
            id=None,
            url=url,
            method=_check_method(spec.method),
            headers=_check_headers(spec.headers),
            body=body,
            body_is_json=body_is_json,
            interval_ms=interval_ms,
            max_retries=max_retries,
            retry_delay_ms=retry_delay_ms,
            created_at=created_at,
            next_run_at=created_at + interval_ms,
            active=True,
        ))

        self.scheduler.schedule(job)
        logger.info(f"Created job {job.id}: {job.method} {job.url} every {job.interval_ms}ms")
        return job

    def update(self, job_id: int, changes: Dict[str, Any]) -> Job:
        """
        Apply a partial change to a job and re-arm it.

        Changing the interval moves next_run_at to one new interval after
        the last run (or creation, if it never ran).

        Args:
            job_id: Job to change
            changes: Subset of EDITABLE_FIELDS; other keys are ignored
        """
        fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}

        updates: Dict[str, Any] = {}
        if 'url' in fields:
            updates['url'] = _check_url(fields['url'])
        if 'method' in fields:
            updates['method'] = _check_method(fields['method'])
        if 'headers' in fields:
            updates['headers'] = _check_headers(fields['headers'])
        if 'body' in fields:
            updates['body'], updates['body_is_json'] = serialize_body(fields['body'])
        if 'interval_ms' in fields:
            updates['interval_ms'] = _as_int(fields['interval_ms'], "intervalMs", 1, MAX_DELAY_MS)
        if 'max_retries' in fields:
            updates['max_retries'] = _as_int(fields['max_retries'], "maxRetries", 0)
        if 'retry_delay_ms' in fields:
            updates['retry_delay_ms'] = _as_int(fields['retry_delay_ms'], "retryDelayMs", 0, MAX_DELAY_MS)

        with self.scheduler.locked(job_id):
            current = self.store.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)

            interval = updates.get('interval_ms')
            if interval is not None and interval != current.interval_ms:
                anchor = current.last_run_at if current.last_run_at is not None else current.created_at
                updates['next_run_at'] = anchor + interval

            job = self.store.update_fields(job_id, updates)
            if job is None:
                raise JobNotFoundError(job_id)
            self.scheduler.schedule(job)

        logger.info(f"Updated job {job_id}: {sorted(updates)}")
        return job

    def disable(self, job_id: int) -> Job:
        """Mark a job inactive and cancel its pending wake."""
        with self.scheduler.locked(job_id):
            job = self.store.set_active(job_id, False)
            if job is None:
                raise JobNotFoundError(job_id)
            self.scheduler.cancel(job_id)

        logger.info(f"Disabled job {job_id}")
        return job

    def enable(self, job_id: int) -> Job:
        """Mark a job active and arm it from its stored next_run_at."""
        with self.scheduler.locked(job_id):
            job = self.store.set_active(job_id, True)
            if job is None:
                raise JobNotFoundError(job_id)
            self.scheduler.schedule(job)

        logger.info(f"Enabled job {job_id}")
        return job

    def delete(self, job_id: int) -> None:
        """Cancel a job's wake and remove it with its history."""
        try:
            with self.scheduler.locked(job_id):
                self.scheduler.cancel(job_id)
                if not self.store.delete(job_id):
                    raise JobNotFoundError(job_id)
        finally:
            self.scheduler.forget(job_id)

        logger.info(f"Deleted job {job_id}")

    # --- Read-through ---

    def get(self, job_id: int) -> Job:
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self) -> List[Job]:
        return self.store.list_all()

    def list_runs(self, job_id: int, limit: Optional[int] = None) -> List[RunLog]:
        """Recent runs for a job, newest first."""
        self.get(job_id)
        if limit is None or limit <= 0:
            limit = self.run_log_limit
        return self.store.list_run_logs(job_id, limit)
