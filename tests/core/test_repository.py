"""Tests for BaseRepository over the SqliteConnection adapter."""

from __future__ import annotations

import pytest

from docspine.core.errors import StorageError
from docspine.core.protocols import Connection
from docspine.core.repository import BaseRepository
from docspine.core.sqlite_conn import SqliteConnection


@pytest.fixture
def conn() -> SqliteConnection:
    """In-memory connection with one document table."""
    c = SqliteConnection(":memory:")
    c.execute("CREATE TABLE docs (id TEXT PRIMARY KEY, title TEXT NOT NULL)")
    c.commit()
    yield c
    c.close()


@pytest.fixture
def repo(conn: SqliteConnection) -> BaseRepository:
    return BaseRepository(conn)


def test_adapter_satisfies_protocol(conn: SqliteConnection) -> None:
    assert isinstance(conn, Connection)


class TestQuery:
    def test_rows_as_dicts(self, repo: BaseRepository) -> None:
        repo.execute("INSERT INTO docs (id, title) VALUES (?, ?)", ("ADR-100", "Use PostgreSQL"))
        assert repo.query("SELECT * FROM docs") == [{"id": "ADR-100", "title": "Use PostgreSQL"}]

    def test_tuple_rows_use_cursor_description(self) -> None:
        """Connections without sqlite3.Row still yield dicts."""
        c = SqliteConnection(":memory:", row_factory=None)
        c.execute("CREATE TABLE docs (id TEXT, title TEXT)")
        c.execute("INSERT INTO docs VALUES ('ADR-1', 'x')")
        assert BaseRepository(c).query("SELECT id, title FROM docs") == [{"id": "ADR-1", "title": "x"}]

    def test_empty(self, repo: BaseRepository) -> None:
        assert repo.query("SELECT * FROM docs") == []


class TestInsertMany:
    def test_inserts_rows(self, repo: BaseRepository) -> None:
        count = repo.insert_many(
            "docs",
            [{"id": "ADR-100", "title": "a"}, {"id": "ADR-101", "title": "b"}],
        )
        assert count == 2
        assert [r["id"] for r in repo.query("SELECT id FROM docs ORDER BY id")] == ["ADR-100", "ADR-101"]

    def test_empty_is_noop(self, repo: BaseRepository) -> None:
        assert repo.insert_many("docs", []) == 0


class TestUnitOfWork:
    def test_commit_on_success(self, repo: BaseRepository) -> None:
        with repo.unit_of_work("add document"):
            repo.execute("INSERT INTO docs (id, title) VALUES (?, ?)", ("ADR-100", "a"))
        repo.conn.rollback()
        assert len(repo.query("SELECT * FROM docs")) == 1

    def test_rollback_on_error(self, repo: BaseRepository) -> None:
        with pytest.raises(RuntimeError):
            with repo.unit_of_work("add document"):
                repo.execute("INSERT INTO docs (id, title) VALUES (?, ?)", ("ADR-100", "a"))
                raise RuntimeError("boom")
        assert repo.query("SELECT * FROM docs") == []

    def test_driver_error_becomes_storage_error(self, repo: BaseRepository) -> None:
        with pytest.raises(StorageError, match="Failed to add document") as exc:
            with repo.unit_of_work("add document"):
                repo.execute("INSERT INTO missing (id) VALUES (?)", ("x",))
        assert exc.value.__cause__ is not None
