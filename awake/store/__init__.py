"""
Job store backends.

- base.py: JobStore interface consumed by the engine
- sqlite.py: durable sqlite store
- memory.py: in-process store
"""

from pathlib import Path

from awake.store.base import JobStore
from awake.store.memory import MemoryJobStore
from awake.store.sqlite import SQLiteJobStore


def create_store(backend: str, db_path: Path = None) -> JobStore:
    """Build the store named by ``backend`` ('sqlite' or 'memory')."""
    if backend == 'memory':
        return MemoryJobStore()
    if backend == 'sqlite':
        return SQLiteJobStore(db_path or Path("./data.sqlite"))
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = ['JobStore', 'MemoryJobStore', 'SQLiteJobStore', 'create_store']
