"""Database utility helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


@contextmanager
def sqlite_connection(path: Path) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection with row factory enabled.

    The transaction is committed when the block exits cleanly and rolled back
    otherwise. ``timeout`` lets concurrent writers wait on the database lock
    instead of failing immediately.
    """

    conn = sqlite3.connect(path, timeout=10.0)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:  # noqa: BLE001
        conn.rollback()
        raise
    finally:
        conn.close()
