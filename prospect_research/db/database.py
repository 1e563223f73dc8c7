"""SQLite handle behind the prospect store.

API routes and CLI commands reach the same file from different threads, so a
single connection is shared (``check_same_thread=False``) and every write goes
through ``transaction()``, which serializes writers and commits or rolls back
as a unit.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_DB = ".prospect_research.db"


class StoreNotConnected(RuntimeError):
    pass


class Database:
    def __init__(self, db_path: str = _DEFAULT_DB):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._write_lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreNotConnected(f"prospect store {self.db_path} is not open")
        return self._conn

    def connect(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        self._conn = conn
        logger.debug("Opened prospect store %s", self.db_path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        return self.conn.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock, self.conn as conn:
            yield conn

    def schema_version(self) -> int:
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def apply_script(self, sql: str, version: int) -> None:
        """Run a schema script and bump ``user_version`` atomically."""
        with self._write_lock:
            try:
                self.conn.executescript(f"BEGIN;\n{sql}\nPRAGMA user_version = {int(version)};\nCOMMIT;")
            except sqlite3.Error:
                self.conn.rollback()
                raise
