"""
Database connection contract used by the persistence layer.

Anything with this shape can back a ``BaseRepository``: the
``SqliteConnection`` adapter in production, an in-memory fake in tests.
A bare ``sqlite3.Connection`` does not qualify; it has no ``fetchone`` or
``fetchall`` of its own.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Synchronous DB-API style connection with a single active cursor.

    ``fetchone``/``fetchall`` read the result set of the last ``execute``.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def executemany(self, sql: str, params: list[tuple]) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = ["Connection"]
