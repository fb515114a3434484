"""
Job executor with retry logic and run recording.
"""

import time
import logging
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

from awake.errors import StoreError, TransportError
from awake.models import Job, RunResult, now_ms
from awake.runner.caller import OutboundCaller
from awake.store.base import JobStore


logger = logging.getLogger("awake.executor")

JSON_CONTENT_TYPE = "application/json"


def build_request(job: Job) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Build outbound headers and body for a job.

    A structured (JSON) body gets a content-type header unless the job
    already configures one, in any letter case. Raw text is sent untouched.

    Returns:
        (headers, body) - body is None when the job has no payload
    """
    headers = dict(job.headers or {})
    if job.body is None:
        return headers, None

    if job.body_is_json and not any(k.lower() == 'content-type' for k in headers):
        headers['content-type'] = JSON_CONTENT_TYPE
    return headers, job.body


class JobExecutor:
    """
    Runs one execution cycle of a job: the retry loop, then the
    unconditional reschedule and the run record.

    Usage:
        executor = JobExecutor(store, OutboundCaller())
        result, updated_job = executor.run(job)
    """

    def __init__(
        self,
        store: JobStore,
        caller: OutboundCaller,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            store: Where schedule updates and run logs are written
            caller: Performs the HTTP requests
            clock: Returns epoch milliseconds
            sleep: Blocks for the given number of seconds between attempts
        """
        self.store = store
        self.caller = caller
        self.clock = clock
        self.sleep = sleep

    def run(self, job: Job) -> Tuple[RunResult, Job]:
        """
        Execute a job with its retry policy.

        Any status code returned by the target ends the loop as a success;
        only transport failures are retried. Whatever the outcome, the job
        is rescheduled one interval after this run finished.

        Args:
            job: Freshly fetched job definition

        Returns:
            (RunResult, job with last_run_at/next_run_at updated)
        """
        headers, body = build_request(job)
        max_attempts = job.max_retries + 1
        result = RunResult(success=False, started_at=self.clock())

        for attempt in range(1, max_attempts + 1):
            result.attempt_count = attempt
            logger.info(f"Executing job {job.id} {job.method} {job.url} (attempt {attempt}/{max_attempts})")

            try:
                status = self.caller.perform(job.method, job.url, headers, body)
            except TransportError as e:
                result.error_message = str(e)
            except Exception as e:
                logger.exception(f"Unexpected error calling {job.url} for job {job.id}")
                result.error_message = f"Unexpected error: {e}"
            else:
                result.success = True
                result.status_code = status
                result.error_message = None
                logger.info(f"Job {job.id} completed with status {status}")
                break

            logger.warning(f"Job {job.id} failed (attempt {attempt}): {result.error_message}")
            if attempt < max_attempts and job.retry_delay_ms > 0:
                logger.info(f"Retrying job {job.id} in {job.retry_delay_ms}ms...")
                self.sleep(job.retry_delay_ms / 1000.0)

        last_run = self.clock()
        result.finished_at = last_run
        updated = replace(job, last_run_at=last_run, next_run_at=last_run + job.interval_ms)

        self._record(updated, result)
        return result, updated

    def _record(self, job: Job, result: RunResult) -> None:
        """
        Persist the new schedule and append the run log.

        Store failures are logged and dropped; the caller reschedules from
        the returned snapshot regardless.
        """
        try:
            self.store.update_schedule(job.id, job.last_run_at, job.next_run_at)
        except StoreError:
            logger.exception(f"Failed to persist schedule for job {job.id}")

        try:
            self.store.append_run_log(result.to_run_log(job.id))
        except StoreError:
            logger.exception(f"Failed to append run log for job {job.id}")
