# Overview: Service-layer operations for concurrency; locking, retries and transaction scope.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class KeyedLocks:
    """
    In-process mutexes keyed by an identifier (order id).

    Serializes read-check-write sequences against one order inside this
    process. Cross-process safety comes from the conditional stock updates
    and the unique indexes on the models.

    An entry lives only while some thread holds or waits on it, so the map
    does not grow with every order ever touched.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders]
        self._locks: dict = {}

    @contextmanager
    def __call__(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# One lock per order for add/increase/decrease/pay
order_locks = KeyedLocks()

# "The session table": start/close/recovery, order creation and payment
day_session_lock = threading.RLock()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Unit of work: commit on success, roll back everything on any error.

    A multi-line stock check that fails half way leaves no reservation
    behind.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
