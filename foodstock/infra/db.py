"""
SQLite connection utilities.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from foodstock.config import DEFAULTS


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager that opens a SQLite connection with:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit on exit (rollback on exception)
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.busy_timeout_s)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Write transaction spanning a whole business operation.

    Starts with BEGIN IMMEDIATE so the write lock is taken up front:
    concurrent writers queue on the busy timeout instead of interleaving
    their read-modify-write steps. Everything is rolled back if the block
    raises.
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.busy_timeout_s, isolation_level=None)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("BEGIN IMMEDIATE;")
        yield conn
        conn.execute("COMMIT;")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
    finally:
        conn.close()


@contextmanager
def use_connection(db_path: str, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
    """Joins the caller's connection if given, otherwise opens a short one."""
    if conn is not None:
        yield conn
        return
    with connect(db_path) as c:
        yield c
