"""SQLite engine factory.

Every named database is one SQLite file opened through SQLAlchemy Core
(no ORM).  The pysqlite driver's implicit transaction handling is
disabled in favour of an explicit ``BEGIN`` emitted on SQLAlchemy's
``begin`` event, so a ``with engine.begin()`` block is exactly one SQLite
transaction (reads included) and multi-statement writes are atomic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

SQLITE_HEADER = b"SQLite format 3\x00"


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def create_db_engine(db_path: Path, *, journal_mode: str = "wal") -> Engine:
    """Create an engine for *db_path* with foreign keys and explicit transactions.

    The file is created by SQLite on first connect if it does not exist.
    Statement logging is configured on the ``sqlalchemy.engine`` logger
    rather than with ``echo``.
    """
    engine = create_engine(f"sqlite:///{db_path}")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        # Autocommit at the driver level; transactions come from the begin hook.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA journal_mode={journal_mode.upper()}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # Unicode-aware case folding for substring search; SQLite LIKE folds only A-Z.
        dbapi_conn.create_function("casefold", 1, _casefold, deterministic=True)

    @event.listens_for(engine, "begin")
    def _begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


def checkpoint(engine: Engine) -> None:
    """Fold the write-ahead log into the main database file.

    Runs on a raw DBAPI connection so no transaction is open while the
    checkpoint executes.  A no-op for databases not in WAL mode.
    """
    raw = engine.raw_connection()
    try:
        cursor = raw.cursor()
        cursor.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        cursor.close()
    finally:
        raw.close()


def looks_like_sqlite(path: Path) -> bool:
    """True if *path* starts with the 16-byte SQLite file header."""
    try:
        with path.open("rb") as fh:
            return fh.read(len(SQLITE_HEADER)) == SQLITE_HEADER
    except OSError:
        return False
