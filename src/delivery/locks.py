"""Keyed mutexes that serialize writes to a single order.

A transition re-reads the order, checks the expected status and writes it
back. Holding the order's lock for that whole read-check-write makes it a
compare-and-swap against the persisted row. The locks only cover this
process; a writer in another process is caught by the aggregate's version
check when the row is saved. The registry holds a lock only while someone
holds or waits on it, and never holds business state.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

_registry_lock = threading.Lock()
# key -> [lock, holders]; an entry is dropped once nobody holds or waits on it
_locks: dict[str, list] = {}


def _acquire_entry(key: str) -> threading.RLock:
    with _registry_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = [threading.RLock(), 0]
        entry[1] += 1
        return entry[0]


def _release_entry(key: str) -> None:
    with _registry_lock:
        entry = _locks[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _locks[key]


@contextmanager
def order_lock(order_id: str) -> Iterator[None]:
    """Hold the single-writer lock for ``order_id``.

    Re-entrant, so an OTP issued right after a transition on the same thread
    does not deadlock.
    """
    key = f"order:{order_id}"
    lock = _acquire_entry(key)
    try:
        with lock:
            yield
    finally:
        _release_entry(key)
