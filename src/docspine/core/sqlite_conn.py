"""SQLite adapter for the ``Connection`` protocol.

``sqlite3.Connection`` executes through throwaway cursors; repositories
expect ``fetchall`` on the connection itself, so the adapter keeps one cursor
and routes every statement through it.

Usage::

    with SqliteConnection("graph.db") as conn:
        GraphRepository(conn).load()
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any


class SqliteConnection:
    def __init__(self, path: str | Path = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self.path = str(path)
        self._conn = sqlite3.connect(self.path)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._cursor.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> sqlite3.Cursor:
        return self._cursor.executemany(sql, params)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SqliteConnection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"
