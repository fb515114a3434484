"""
Data model for the job engine.

Times are integer epoch milliseconds throughout, so schedule arithmetic
(next_run_at = last_run_at + interval_ms) stays exact.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def normalize_method(method: Optional[str]) -> str:
    """Upper-case an HTTP method, defaulting to GET."""
    return str(method or "GET").upper()


def serialize_body(body: Any) -> tuple:
    """
    Convert a job payload into its stored form.

    Returns:
        (text, is_json) - strings are kept as raw text, every other
        value is JSON-encoded and flagged as structured data.
    """
    if body is None:
        return None, False
    if isinstance(body, str):
        return body, False
    return json.dumps(body), True


@dataclass
class Job:
    """A persisted recurring outbound call."""
    id: Optional[int]
    url: str
    method: str
    interval_ms: int
    created_at: int
    headers: Optional[Dict[str, str]] = None
    body: Optional[str] = None
    body_is_json: bool = False
    max_retries: int = 0
    retry_delay_ms: int = 0
    last_run_at: Optional[int] = None
    next_run_at: Optional[int] = None
    active: bool = True

    def first_run_at(self) -> int:
        """Wake time used when no next_run_at has been computed yet."""
        if self.next_run_at is not None:
            return self.next_run_at
        return self.created_at + self.interval_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        body = self.body
        if body is not None and self.body_is_json:
            body = json.loads(body)
        return {
            'id': self.id,
            'url': self.url,
            'method': self.method,
            'headers': self.headers,
            'body': body,
            'bodyIsJson': self.body_is_json,
            'intervalMs': self.interval_ms,
            'maxRetries': self.max_retries,
            'retryDelayMs': self.retry_delay_ms,
            'createdAt': self.created_at,
            'lastRunAt': self.last_run_at,
            'nextRunAt': self.next_run_at,
            'active': self.active,
        }


@dataclass
class JobSpec:
    """Caller-supplied definition of a new job."""
    url: str
    interval_ms: int
    method: Optional[str] = "GET"
    headers: Optional[Dict[str, str]] = None
    body: Any = None
    max_retries: int = 0
    retry_delay_ms: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobSpec":
        """Build a spec from a request payload using the wire field names."""
        return cls(
            url=data.get('url'),
            interval_ms=data.get('intervalMs'),
            method=data.get('method'),
            headers=data.get('headers'),
            body=data.get('body'),
            max_retries=data.get('maxRetries', 0),
            retry_delay_ms=data.get('retryDelayMs', 0),
        )


@dataclass
class RunLog:
    """Immutable record of one execution cycle."""
    job_id: int
    started_at: int
    finished_at: int
    success: bool
    attempt_count: int
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'jobId': self.job_id,
            'startedAt': self.started_at,
            'finishedAt': self.finished_at,
            'success': self.success,
            'statusCode': self.status_code,
            'errorMessage': self.error_message,
            'attemptCount': self.attempt_count,
        }


@dataclass
class RunResult:
    """Outcome of a single executor run (all attempts)."""
    success: bool
    attempt_count: int = 0
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    started_at: int = 0
    finished_at: int = 0

    @property
    def duration_ms(self) -> int:
        return self.finished_at - self.started_at

    def to_run_log(self, job_id: int) -> RunLog:
        return RunLog(
            job_id=job_id,
            started_at=self.started_at,
            finished_at=self.finished_at,
            success=self.success,
            attempt_count=self.attempt_count,
            status_code=self.status_code,
            error_message=None if self.success else self.error_message,
        )
