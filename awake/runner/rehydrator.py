"""
Startup rehydration of the wake table from persisted jobs.
"""

import logging

from awake.errors import RehydrationError, StoreError
from awake.runner.scheduler import Scheduler
from awake.store.base import JobStore


logger = logging.getLogger("awake.rehydrator")


class Rehydrator:
    """Arms a wake for every active job found in the store."""

    def __init__(self, store: JobStore, scheduler: Scheduler):
        self.store = store
        self.scheduler = scheduler

    def start(self) -> int:
        """
        Load active jobs and schedule each one.

        Returns:
            Number of jobs armed

        Raises:
            RehydrationError: if the store cannot enumerate jobs
        """
        try:
            jobs = self.store.list_active()
        except StoreError as e:
            raise RehydrationError(f"Cannot load active jobs: {e}") from e

        for job in jobs:
            self.scheduler.schedule(job)

        logger.info(f"Rehydrated {len(jobs)} active job(s)")
        return len(jobs)
