"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


class SQLiteDatabase:
    """Thin wrapper around sqlite3 holding one shared connection.

    The connection is opened with ``check_same_thread=False`` because FastAPI
    may resolve dependencies and run the event loop on different threads; all
    access still happens from one thread at a time.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path if db_path == ":memory:" else Path(db_path).expanduser()
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            for pragma in DEFAULT_PRAGMAS:
                self._connection.execute(pragma)
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        return self.connect().execute(sql, params or [])

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
        self.connect().executescript(schema_sql)


__all__ = ["SQLiteDatabase"]
