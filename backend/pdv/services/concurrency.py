# Overview: Transaction and row-locking helpers shared by write services.

from __future__ import annotations

from sqlalchemy import text


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the write lock comes from begin_write_transaction instead.
    """
    return query.with_for_update()


def begin_write_transaction(session) -> None:
    """
    Take the database write lock up front on SQLite.

    WHY: pysqlite opens transactions lazily on the first INSERT/UPDATE, so a
    read-check-write sequence could interleave with another writer between
    the read and the write. BEGIN IMMEDIATE serializes writers from the first
    statement. No-op on other dialects (they use lock_for_update) and when a
    transaction is already open on the connection, e.g. when a caller
    composes several service calls into one unit of work.
    """
    bind = session.get_bind()
    if bind.dialect.name != "sqlite":
        return

    connection = session.connection()
    driver_connection = connection.connection.driver_connection
    if not driver_connection.in_transaction:
        connection.execute(text("BEGIN IMMEDIATE"))
