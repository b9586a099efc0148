"""SQLite connection for the catalog store.

Opens the database in WAL mode with foreign keys enforced and hands over to
SchemaMixin._ensure_schema(). Write transactions are scoped with
``with self.conn:`` by the query mixins; this module only owns the
connection's lifetime.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger("phantom.database")

__all__ = ["ConnectionBase", "open_connection"]

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 5000",
)


def open_connection(db_path: Path) -> sqlite3.Connection:
    """Open ``db_path`` (creating its folder) with the catalog pragmas applied."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    for pragma in _PRAGMAS:
        conn.execute(pragma)
    return conn


class ConnectionBase:
    """Connection lifetime for the store mixins.

    Usable as a context manager; ``close()`` may be called more than once.
    """

    SCHEMA_VERSION = 1

    conn: sqlite3.Connection
    db_path: Path

    def __init__(self, db_path: Path) -> None:
        """Open the database and make sure the schema exists.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = db_path
        self.conn = open_connection(db_path)
        self._closed = False
        logger.debug("Opened catalog %s", db_path)

        self._ensure_schema()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self.conn.close()
        self._closed = True

    def __enter__(self) -> ConnectionBase:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
