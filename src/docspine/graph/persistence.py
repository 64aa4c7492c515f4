"""
SQLite persistence for the document graph.

Each document persists its revision entries (``date, description``) and its
relationships (``from, to, type``). Only forward-labelled edges are written;
mirrors are re-derived on load by replaying every row through the public
GraphStore API, so a snapshot that violates an invariant fails to load
instead of producing a half-mirrored graph.

Architecture::

    ┌──────────────────────────┐     ┌──────────────────────────────────────┐
    │ documents                │     │ revision_entries                     │
    │  id PK, title, position  │◀────│  document_id, seq, date, description │
    └──────────────────────────┘     └──────────────────────────────────────┘
                ▲
                │               ┌─────────────────────────────────────┐
                └───────────────│ relationships                       │
                                │  from_id, to_id, type, created_at   │
                                └─────────────────────────────────────┘

Usage::

    repo = GraphRepository.from_settings()      # DOCSPINE_DATABASE_PATH
    repo.save(store)
    restored = repo.load()

Tags:
    persistence, sqlite, repository, snapshot
"""

from __future__ import annotations

from docspine.core.errors import DocSpineError, StorageError
from docspine.core.logging import get_logger
from docspine.core.repository import BaseRepository
from docspine.core.settings import EngineSettings, get_settings
from docspine.core.sqlite_conn import SqliteConnection
from docspine.core.timestamps import from_iso8601, parse_date, to_iso8601
from docspine.graph.revision_log import CREATED_DESCRIPTION, RevisionLogManager
from docspine.graph.store import GraphStore

logger = get_logger(__name__)

DOCUMENTS_TABLE = "documents"
REVISIONS_TABLE = "revision_entries"
RELATIONSHIPS_TABLE = "relationships"

SCHEMA = (
    f"""
    CREATE TABLE IF NOT EXISTS {DOCUMENTS_TABLE} (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        position INTEGER NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {REVISIONS_TABLE} (
        document_id TEXT NOT NULL REFERENCES {DOCUMENTS_TABLE}(id),
        seq INTEGER NOT NULL,
        date TEXT NOT NULL,
        description TEXT NOT NULL,
        PRIMARY KEY (document_id, seq)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {RELATIONSHIPS_TABLE} (
        from_id TEXT NOT NULL REFERENCES {DOCUMENTS_TABLE}(id),
        to_id TEXT NOT NULL REFERENCES {DOCUMENTS_TABLE}(id),
        type TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (from_id, to_id, type)
    )
    """,
)


class GraphRepository(BaseRepository):
    """Snapshot save/load of a GraphStore."""

    @classmethod
    def from_settings(cls, settings: EngineSettings | None = None) -> GraphRepository:
        """Repository on the SQLite database named by ``database_path``, tables ensured."""
        settings = settings or get_settings()
        repo = cls(SqliteConnection(settings.database_path))
        repo.create_tables()
        return repo

    def create_tables(self) -> None:
        with self.unit_of_work("create graph tables"):
            for ddl in SCHEMA:
                self.execute(ddl)

    def save(self, store: GraphStore) -> None:
        """Replace the stored snapshot with ``store``'s current state."""
        documents = store.documents()
        doc_rows = [
            {"id": d.id, "title": d.title, "position": i} for i, d in enumerate(documents)
        ]
        revision_rows = [
            {
                "document_id": d.id,
                "seq": seq,
                "date": to_iso8601(entry.date),
                "description": entry.description,
            }
            for d in documents
            for seq, entry in enumerate(d.revision_log)
        ]
        edge_rows = [
            {
                "from_id": e.from_id,
                "to_id": e.to_id,
                "type": e.type.value,
                "created_at": to_iso8601(e.created_at),
            }
            for e in store.forward_edges()
        ]

        with self.unit_of_work("save graph snapshot"):
            for table in (RELATIONSHIPS_TABLE, REVISIONS_TABLE, DOCUMENTS_TABLE):
                self.execute(f"DELETE FROM {table}")
            self.insert_many(DOCUMENTS_TABLE, doc_rows)
            self.insert_many(REVISIONS_TABLE, revision_rows)
            self.insert_many(RELATIONSHIPS_TABLE, edge_rows)

        logger.info(
            "graph_saved",
            documents=len(doc_rows),
            revisions=len(revision_rows),
            relationships=len(edge_rows),
        )

    def load(self, revision_log: RevisionLogManager | None = None) -> GraphStore:
        """Rebuild a GraphStore from the stored snapshot."""
        with self.unit_of_work("read graph snapshot"):
            documents = self.query(
                f"SELECT id, title FROM {DOCUMENTS_TABLE} ORDER BY position"
            )
            revisions = self.query(
                f"SELECT document_id, seq, date, description FROM {REVISIONS_TABLE} "
                "ORDER BY document_id, seq"
            )
            edges = self.query(
                f"SELECT from_id, to_id, type, created_at FROM {RELATIONSHIPS_TABLE} "
                "ORDER BY created_at, from_id, to_id, type"
            )

        by_document: dict[str, list[dict]] = {}
        for row in revisions:
            by_document.setdefault(row["document_id"], []).append(row)

        store = GraphStore(revision_log)
        try:
            for row in documents:
                entries = by_document.get(row["id"], [])
                if not entries or entries[0]["description"] != CREATED_DESCRIPTION:
                    raise StorageError(
                        f"Stored revision log of {row['id']} does not start with "
                        f"'{CREATED_DESCRIPTION}'"
                    ).with_context(document_id=row["id"])
                store.register_document(
                    row["id"], row["title"], created_on=parse_date(entries[0]["date"])
                )
                for entry in entries[1:]:
                    store.append_revision(
                        row["id"], entry["description"], on=parse_date(entry["date"])
                    )
            for row in edges:
                store.add_edge(
                    row["from_id"],
                    row["to_id"],
                    row["type"],
                    created_at=from_iso8601(row["created_at"]),
                )
        except StorageError:
            raise
        except DocSpineError as e:
            raise StorageError(f"Stored graph snapshot is invalid: {e.message}", cause=e) from e

        logger.info("graph_loaded", documents=len(documents), relationships=len(edges))
        return store


__all__ = ["GraphRepository", "SCHEMA"]
