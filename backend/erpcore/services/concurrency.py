# Overview: Transaction scope, row locking and retry helpers shared by every service.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


_DEPTH_KEY = "uow_depth"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Callers that must be race-free on SQLite pair this with a conditional
    UPDATE.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work(session):
    """
    Transaction scope around a block of writes.

    The outermost scope commits on success and rolls back on any exception.
    Nested scopes join the outer one: they neither commit nor roll back, so a
    failure anywhere discards the whole operation.
    """
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except BaseException:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Inside an enclosing unit of work the
    operation runs once, since the outer scope owns the transaction.
    """
    if session.info.get(_DEPTH_KEY, 0):
        return func()

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
