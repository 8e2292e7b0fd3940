"""
Per-tenant mutual exclusion.

Queue updates and scheduled resets both read aggregate fields and write a
recomputation. Request handlers and timer threads run concurrently, so each
read-modify-write sequence holds its tenant's lock.
"""
from contextlib import contextmanager
from typing import Dict, Iterator
import threading


class TenantLocks:
    """Registry of one re-entrant lock per tenant id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, tenant_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[tenant_id] = lock
            return lock

    @contextmanager
    def hold(self, tenant_id: str) -> Iterator[None]:
        lock = self._lock_for(tenant_id)
        with lock:
            yield
