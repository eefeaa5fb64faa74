# Overview: Transaction and locking helpers for the stock-mutating workflows.

from __future__ import annotations

from sqlalchemy import text

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the unit of work for a stock-mutating operation.

    SQLite has no row locks, so the whole database write lock is taken up
    front with BEGIN IMMEDIATE: a second writer waits (busy timeout) until
    the first commits and then reads the committed stock. Other backends
    rely on lock_for_update() on the rows being changed.

    Anything already pending on the session is committed first so the
    explicit BEGIN starts from a clean connection state.
    """
    if db.session.get_bind().dialect.name != "sqlite":
        return
    db.session.commit()
    db.session.execute(text("BEGIN IMMEDIATE"))
