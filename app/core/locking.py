"""
Per-employee serialization

Ledger mutations, attendance saves, leave approvals and slip regeneration for
one employee run one at a time inside this process. Cross-process safety is
provided by the database (conditional updates and unique keys); this lock
removes in-process interleaving between read and write steps.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

_registry_lock = threading.Lock()
_employee_locks: Dict[int, threading.RLock] = {}


def _lock_for(employee_id: int) -> threading.RLock:
    with _registry_lock:
        lock = _employee_locks.get(employee_id)
        if lock is None:
            lock = threading.RLock()
            _employee_locks[employee_id] = lock
        return lock


@contextmanager
def employee_lock(employee_id: int) -> Iterator[None]:
    """Hold the employee's lock for the duration of the block (re-entrant)."""
    lock = _lock_for(employee_id)
    with lock:
        yield
