"""
Pytest configuration and shared fixtures for engine tests.
"""

import os
import sys
from typing import List

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from awake.errors import TransportError
from awake.models import Job
from awake.runner.executor import JobExecutor
from awake.runner.scheduler import Scheduler
from awake.service import JobService
from awake.store.memory import MemoryJobStore
from awake.store.sqlite import SQLiteJobStore


START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeSleep:
    """Records requested sleeps and moves the clock forward instead of blocking."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(int(round(seconds * 1000)))


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        self.function(*self.args, **self.kwargs)


class TimerFactory:
    """Creates FakeTimers and keeps every one it made."""

    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def live(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class ScriptedCaller:
    """
    Outbound caller returning scripted outcomes in order.

    An outcome is a status code or an exception instance to raise; once
    the script runs out, ``default`` is used.
    """

    def __init__(self, outcomes=None, default=200):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.calls = []

    def perform(self, method, url, headers=None, body=None):
        self.calls.append({'method': method, 'url': url, 'headers': headers, 'body': body})
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def always_failing_caller() -> ScriptedCaller:
    return ScriptedCaller(default=TransportError("ConnectionError: connection refused"))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def caller() -> ScriptedCaller:
    return ScriptedCaller()


@pytest.fixture
def store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteJobStore:
    return SQLiteJobStore(tmp_path / "jobs.sqlite")


@pytest.fixture(params=['memory', 'sqlite'])
def any_store(request, tmp_path):
    """Each JobStore backend in turn."""
    if request.param == 'memory':
        return MemoryJobStore()
    return SQLiteJobStore(tmp_path / "jobs.sqlite")


@pytest.fixture
def executor(store, caller, clock, fake_sleep) -> JobExecutor:
    return JobExecutor(store, caller, clock=clock, sleep=fake_sleep)


@pytest.fixture
def scheduler(store, executor, clock, timers) -> Scheduler:
    return Scheduler(store, executor, clock=clock, timer_factory=timers, fetch_retry_ms=500)


@pytest.fixture
def service(store, scheduler, clock) -> JobService:
    return JobService(store, scheduler, clock=clock)


@pytest.fixture
def make_job(store, clock):
    """Insert a job straight into the memory store."""
    def _make(**overrides) -> Job:
        fields = {
            'id': None,
            'url': 'https://example.com/ping',
            'method': 'GET',
            'interval_ms': 1000,
            'created_at': clock(),
        }
        fields.update(overrides)
        return store.insert(Job(**fields))
    return _make
