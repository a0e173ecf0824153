# Overview: Service-layer transaction primitives; every ledger mutation runs inside unit_of_work.

from __future__ import annotations

from contextlib import contextmanager


def resolve_session(session=None):
    """Explicit session handle if given, else the app-context scoped session."""
    if session is not None:
        return session
    from ..extensions import db
    return db.session


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work(session):
    """
    Atomic unit of work over an explicit session handle.

    Commits when the block finishes, rolls back and re-raises on any
    exception. Nothing written inside the block is visible to other
    connections until the commit.
    """
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
