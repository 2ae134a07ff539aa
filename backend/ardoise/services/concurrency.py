# Overview: Unit-of-work helpers; every tab mutation and settlement runs through run_atomic.

from __future__ import annotations

import threading
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Process-wide critical section for writers. Only the outermost unit of work
# takes it; nested units join the outer transaction (see run_atomic).
_write_lock = threading.Lock()
_unit_state = threading.local()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _begin_immediate() -> None:
    """
    On SQLite, take the database write lock before the first read so a
    snapshot and the writes based on it cannot be interleaved by another
    connection.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


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


def in_unit_of_work() -> bool:
    return getattr(_unit_state, "depth", 0) > 0


def run_atomic(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one indivisible unit: inside the writer critical section,
    in a single database transaction, committed once at the end.

    Any exception rolls the whole unit back and propagates; nothing func did
    is visible afterwards.

    A call made while a unit is already open on this thread does not commit:
    func runs inside the outer transaction, and the outermost unit alone
    commits or rolls back.
    """
    if in_unit_of_work():
        return func()

    def _op():
        with _write_lock:
            _unit_state.depth = 1
            try:
                _begin_immediate()
                result = func()
                db.session.commit()
                return result
            except Exception:
                db.session.rollback()
                raise
            finally:
                _unit_state.depth = 0

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
