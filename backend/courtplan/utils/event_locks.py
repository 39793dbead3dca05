"""
Per-event write serialization.

Generate, auto-allocate, assign-single, move and clear all read an occupancy
snapshot and then write court/time onto encounters. Two of them interleaving on
the same event can both pick one slot, so every write path holds the event's
lock for its whole read-modify-write cycle. Reads (validate, grid) stay unlocked.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_event_locks: Dict[int, threading.RLock] = {}


def _lock_for(event_id: int) -> threading.RLock:
    with _registry_lock:
        lock = _event_locks.get(event_id)
        if lock is None:
            lock = threading.RLock()
            _event_locks[event_id] = lock
        return lock


@contextmanager
def event_write_lock(event_id: int) -> Iterator[None]:
    """Hold the single-writer lock for an event (re-entrant within a thread)."""
    lock = _lock_for(event_id)
    lock.acquire()
    logger.debug("Acquired schedule write lock for event %d", event_id)
    try:
        yield
    finally:
        lock.release()
        logger.debug("Released schedule write lock for event %d", event_id)
