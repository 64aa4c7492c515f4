"""Base repository over the ``Connection`` protocol.

Subclasses describe their work in terms of ``unit_of_work``: every statement
inside one block commits together, and any driver failure surfaces as a
``StorageError`` naming the action that failed, with the driver exception
chained as its cause.

Architecture::

    with repo.unit_of_work("save graph snapshot"):
        repo.execute(...)            ─┐
        repo.insert_many(...)         │ commit on success
                                     ─┘ rollback on error
        sqlite3.Error ──────────────▶ StorageError("Failed to save graph snapshot")
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from docspine.core.errors import StorageError
from docspine.core.protocols import Connection


class BaseRepository:
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: tuple = ()) -> Any:
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Run a SELECT; rows come back as dicts keyed by column name."""
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if rows and not hasattr(rows[0], "keys"):
            columns = [col[0] for col in cursor.description]
            return [dict(zip(columns, row, strict=True)) for row in rows]
        return [dict(row) for row in rows]

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> int:
        """Insert dict rows sharing the first row's columns; returns the count."""
        if not rows:
            return 0
        columns = list(rows[0])
        placeholders = ", ".join("?" * len(columns))
        self.conn.executemany(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            [tuple(row[col] for col in columns) for row in rows],
        )
        return len(rows)

    @contextmanager
    def unit_of_work(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StorageError(f"Failed to {action}", cause=e) from e
        except Exception:
            self.conn.rollback()
            raise
        self.conn.commit()


__all__ = ["BaseRepository"]
