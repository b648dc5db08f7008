"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from agent_memory.core.errors import StorageError

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 that maps driver failures to StorageError.

    The connection is opened with ``check_same_thread=False`` because calls are
    dispatched through ``asyncio.to_thread``; the owner serializes access.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path.expanduser()
        self._connection: sqlite3.Connection | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageError(f"Database {self.db_path} is closed")
        if self._connection is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                connection = sqlite3.connect(self.db_path, check_same_thread=False)
                connection.row_factory = sqlite3.Row
                for pragma in DEFAULT_PRAGMAS:
                    connection.execute(pragma)
            except (OSError, sqlite3.Error) as exc:
                raise StorageError(f"Failed to open database {self.db_path}", exc) from exc
            self._connection = connection
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._closed = True

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        try:
            return conn.execute(sql, params or [])
        except sqlite3.Error as exc:
            raise StorageError("SQLite statement failed", exc) from exc

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and re-raise on any failure."""
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError("SQLite transaction failed", exc) from exc
        except Exception:
            conn.rollback()
            raise

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_path = Path(__file__).with_name("schema.sql")
            schema_sql = schema_path.read_text(encoding="utf-8")
        conn = self.connect()
        try:
            conn.executescript(schema_sql)
        except sqlite3.Error as exc:
            raise StorageError("Failed to apply index schema", exc) from exc


def iter_rows(cursor: sqlite3.Cursor) -> Iterator[sqlite3.Row]:
    """Yield rows from a cursor lazily."""
    while True:
        row = cursor.fetchone()
        if row is None:
            break
        yield row


__all__ = ["SQLiteDatabase", "iter_rows"]
