"""
Exception types raised across the engine boundary.
"""


class AwakeError(Exception):
    """Base class for all engine errors."""


class JobValidationError(AwakeError):
    """A job definition is operationally meaningless (bad interval, negative retries, ...)."""


class JobNotFoundError(AwakeError):
    """No job exists with the requested id."""

    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class StoreError(AwakeError):
    """The job store failed to read or write."""


class TransportError(AwakeError):
    """An outbound call could not be completed (no status code was received)."""


class RehydrationError(AwakeError):
    """Active jobs could not be enumerated at startup."""
