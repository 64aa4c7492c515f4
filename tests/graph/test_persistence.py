"""Tests for SQLite snapshot persistence of the graph."""

from datetime import date

import pytest

from docspine.core.errors import StorageError
from docspine.core.settings import EngineSettings
from docspine.core.sqlite_conn import SqliteConnection
from docspine.graph.persistence import GraphRepository
from docspine.graph.revision_log import CREATED_DESCRIPTION


@pytest.fixture
def conn() -> SqliteConnection:
    c = SqliteConnection(":memory:")
    yield c
    c.close()


@pytest.fixture
def repo(conn: SqliteConnection) -> GraphRepository:
    repository = GraphRepository(conn)
    repository.create_tables()
    return repository


def populate(store):
    store.register_document("ADR-102", "Read replicas")
    store.add_edge("ADR-101", "ADR-100", "Depends on")
    store.add_edge("ADR-102", "ADR-100", "Extends")
    store.append_revision("ADR-101", "Pool size raised to 20", on=date(2024, 2, 1))
    return store


class TestSaveLoad:
    def test_round_trip(self, repo, adr_store):
        populate(adr_store)
        repo.save(adr_store)

        restored = repo.load()
        assert restored.to_dict() == adr_store.to_dict()
        assert restored.check_invariants() == []

    def test_only_forward_rows_stored(self, repo, adr_store):
        populate(adr_store)
        repo.save(adr_store)
        rows = repo.query("SELECT type FROM relationships ORDER BY type")
        assert [r["type"] for r in rows] == ["Depends on", "Extends"]

    def test_revision_rows(self, repo, adr_store):
        populate(adr_store)
        repo.save(adr_store)
        rows = repo.query(
            "SELECT seq, date, description FROM revision_entries WHERE document_id = ? ORDER BY seq",
            ("ADR-101",),
        )
        assert [r["description"] for r in rows] == [CREATED_DESCRIPTION, "Pool size raised to 20"]
        assert rows[1]["date"] == "2024-02-01"

    def test_save_replaces_previous_snapshot(self, repo, adr_store):
        populate(adr_store)
        repo.save(adr_store)
        adr_store.remove_edge("ADR-102", "ADR-100", "Extends")
        repo.save(adr_store)
        assert len(repo.load().forward_edges()) == 1

    def test_empty_snapshot(self, repo):
        assert repo.load().documents() == []


class TestCorruptSnapshot:
    def test_bad_first_entry(self, repo, adr_store):
        repo.save(adr_store)
        repo.execute(
            "UPDATE revision_entries SET description = ? WHERE document_id = ? AND seq = 0",
            ("Edited", "ADR-100"),
        )
        with pytest.raises(StorageError) as exc:
            repo.load()
        assert exc.value.context.document_id == "ADR-100"

    def test_unknown_relationship_type(self, repo, adr_store):
        repo.save(adr_store)
        repo.execute(
            "INSERT INTO relationships (from_id, to_id, type, created_at) VALUES (?, ?, ?, ?)",
            ("ADR-101", "ADR-100", "Related to", "2024-01-15T00:00:00+00:00"),
        )
        with pytest.raises(StorageError, match="invalid"):
            repo.load()

    def test_missing_tables(self, conn):
        with pytest.raises(StorageError):
            GraphRepository(conn).load()


class TestFromSettings:
    def test_opens_configured_database(self, tmp_path, adr_store):
        settings = EngineSettings(database_path=str(tmp_path / "graph.db"))
        GraphRepository.from_settings(settings).save(adr_store)

        restored = GraphRepository.from_settings(settings).load()
        assert [d.id for d in restored.documents()] == ["ADR-100", "ADR-101"]
