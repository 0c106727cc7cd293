# Overview: Row locking and transaction boundaries for lifecycle transitions.

from __future__ import annotations

from contextlib import contextmanager


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic(session):
    """
    Run the block as one database transaction.

    Commits when the block exits normally. Any exception rolls back and is
    re-raised unchanged: there is no retry, callers re-invoke.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
