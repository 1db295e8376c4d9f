# Overview: Concurrency helpers for reservation writes: per-variant mutexes,
# row locking and retry on database contention.

from __future__ import annotations

import logging
import threading
import time
import weakref
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)

_registry_guard = threading.Lock()
# Entries vanish once no caller holds the mutex, so idle variants cost nothing.
_variant_mutexes: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()


def _mutex_for(variant_id: int) -> threading.Lock:
    with _registry_guard:
        mutex = _variant_mutexes.get(variant_id)
        if mutex is None:
            mutex = threading.Lock()
            _variant_mutexes[variant_id] = mutex
        return mutex


@contextmanager
def variant_mutex(variant_id: int):
    """
    Serialize check-then-insert for one variant within this process.

    Locks for different variants never contend with each other.
    """
    mutex = _mutex_for(variant_id)
    with mutex:
        yield


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the matched rows. SQLite ignores the clause."""
    return query.with_for_update()


def advisory_lock(key: int) -> None:
    """
    Take a transaction-scoped advisory lock on PostgreSQL.

    Row locks cannot guard rows that do not exist yet, so inserts into an
    empty range need a lock keyed on the variant itself. No-op elsewhere.
    """
    if db.engine.dialect.name == "postgresql":
        db.session.execute(db.text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})


def sqlite_write_lock(table_name: str) -> None:
    """
    Open the SQLite write transaction now, as BEGIN IMMEDIATE would.

    pysqlite begins transactions lazily at the first DML statement, so an
    UPDATE matching no rows takes the RESERVED lock without changing data.
    A second connection blocks here (up to its busy timeout) until commit
    or rollback, and then reads the committed state.
    """
    db.session.execute(db.text(f"UPDATE {table_name} SET id = id WHERE id IS NULL"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func, rolling back and retrying when the database reports lock
    contention or a stale row version.

    Waits backoff_base * 2**n between tries; the last failure propagates.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            logger.warning("Database contention (attempt %d/%d): %s", attempt, attempts, exc)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
