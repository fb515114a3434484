"""
In-process wake table for active jobs.

Each pending wake is a threading.Timer; when it fires, the job is read
again from the store and, if still active, executed on the timer's own
thread and then re-armed from the executor's returned schedule.
"""

import threading
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from awake.models import Job, now_ms
from awake.runner.executor import JobExecutor
from awake.store.base import JobStore


logger = logging.getLogger("awake.scheduler")


@dataclass
class Wake:
    """A pending fire for one job id."""
    token: object
    timer: threading.Timer
    due_at: int


class Scheduler:
    """
    Owns at most one pending wake per job id.

    All table mutation goes through schedule() and cancel(). A per-job
    reentrant lock serializes a fire cycle (fetch, run, persist, re-arm)
    with any outside mutation of the same job; use ``locked(job_id)`` to
    join that critical section.

    Usage:
        scheduler = Scheduler(store, executor)
        scheduler.schedule(job)
        ...
        scheduler.shutdown()
    """

    def __init__(
        self,
        store: JobStore,
        executor: JobExecutor,
        clock: Callable[[], int] = now_ms,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        fetch_retry_ms: int = 1000
    ):
        """
        Args:
            store: Source of truth re-read at every fire
            executor: Runs a job once a wake fires
            clock: Returns epoch milliseconds
            timer_factory: threading.Timer compatible constructor
            fetch_retry_ms: Re-arm delay when the store cannot be read at fire time
        """
        self.store = store
        self.executor = executor
        self.clock = clock
        self.timer_factory = timer_factory
        self.fetch_retry_ms = fetch_retry_ms

        self._lock = threading.Lock()
        self._wakes: Dict[int, Wake] = {}
        self._job_locks: Dict[int, threading.RLock] = {}
        self._closed = False

    # --- Critical sections ---

    def _job_lock(self, job_id: int) -> threading.RLock:
        with self._lock:
            lock = self._job_locks.get(job_id)
            if lock is None:
                lock = self._job_locks[job_id] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, job_id: int):
        """Hold the per-job lock for the duration of the block."""
        with self._job_lock(job_id):
            yield

    def forget(self, job_id: int) -> None:
        """
        Drop the per-job lock of a deleted job.

        The entry stays while another thread holds the lock or a wake is
        still pending for the id.
        """
        with self._lock:
            lock = self._job_locks.get(job_id)
            if lock is None or job_id in self._wakes:
                return
            if not lock.acquire(blocking=False):
                return
            try:
                del self._job_locks[job_id]
            finally:
                lock.release()

    # --- Wake table ---

    def schedule(self, job: Job) -> None:
        """
        Arm (or re-arm) the wake for a job.

        Inactive jobs only have their pending wake cancelled. Otherwise
        the wake is due at next_run_at, or created_at + interval_ms when
        no run time has been computed yet; a due time in the past fires
        immediately.
        """
        with self.locked(job.id):
            if not job.active:
                self.cancel(job.id)
                return

            delay = max(0, job.first_run_at() - self.clock())
            self._arm(job.id, delay)

    def cancel(self, job_id: int) -> bool:
        """
        Drop the pending wake for a job, if any.

        Returns:
            True if a wake was removed
        """
        with self._lock:
            wake = self._wakes.pop(job_id, None)
        if wake is None:
            return False

        wake.timer.cancel()
        logger.debug(f"Cancelled wake for job {job_id}")
        return True

    def _arm(self, job_id: int, delay_ms: int) -> None:
        token = object()
        timer = self.timer_factory(delay_ms / 1000.0, self._fire, args=(job_id, token))
        timer.daemon = True

        with self._lock:
            if self._closed:
                return
            previous = self._wakes.get(job_id)
            self._wakes[job_id] = Wake(token=token, timer=timer, due_at=self.clock() + delay_ms)

        if previous is not None:
            previous.timer.cancel()
        timer.start()
        logger.debug(f"Armed job {job_id} in {delay_ms}ms")

    def _fire(self, job_id: int, token: object) -> None:
        with self.locked(job_id):
            with self._lock:
                wake = self._wakes.get(job_id)
                if wake is None or wake.token is not token:
                    # Superseded or cancelled after the timer went off
                    return
                del self._wakes[job_id]

            try:
                job = self.store.get(job_id)
            except Exception:
                logger.exception(f"Could not load job {job_id}; retrying in {self.fetch_retry_ms}ms")
                self._arm(job_id, self.fetch_retry_ms)
                return

            if job is None or not job.active:
                logger.info(f"Job {job_id} deleted or disabled since it was armed; skipping")
                return

            try:
                result, updated = self.executor.run(job)
            except Exception:
                logger.exception(f"Run of job {job_id} failed unexpectedly; retrying in {job.interval_ms}ms")
                self._arm(job_id, job.interval_ms)
                return

            logger.info(
                f"Job {job_id} run finished: success={result.success} "
                f"attempts={result.attempt_count} in {result.duration_ms}ms "
                f"next_run_at={updated.next_run_at}"
            )
            self.schedule(updated)

    # --- Introspection ---

    def has_wake(self, job_id: int) -> bool:
        with self._lock:
            return job_id in self._wakes

    def wake_due_at(self, job_id: int) -> Optional[int]:
        """Epoch ms at which the job's pending wake fires, or None."""
        with self._lock:
            wake = self._wakes.get(job_id)
            return wake.due_at if wake else None

    def pending_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._wakes)

    def shutdown(self) -> None:
        """Cancel every pending wake and refuse new ones."""
        with self._lock:
            self._closed = True
            wakes = list(self._wakes.values())
            self._wakes.clear()

        for wake in wakes:
            wake.timer.cancel()
        logger.info(f"Scheduler stopped, {len(wakes)} pending wake(s) cancelled")
