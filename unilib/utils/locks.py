from __future__ import annotations

import threading
from contextlib import contextmanager

_registry_lock = threading.Lock()
# one lock per (university, book) ever checked out; bounded by the catalog size
_book_locks: dict[tuple[int, int], threading.Lock] = {}


def _lock_for(university_id: int, book_id: int) -> threading.Lock:
    key = (int(university_id), int(book_id))
    with _registry_lock:
        lock = _book_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _book_locks[key] = lock
        return lock


@contextmanager
def book_lock(university_id: int, book_id: int):
    """
    Per-book serialization point for the check-and-insert of a checkout.

    Only covers this process; other workers are stopped by the loan_version
    compare-and-set in LoanService.
    """
    lock = _lock_for(university_id, book_id)
    with lock:
        yield
