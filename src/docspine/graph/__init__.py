"""
Document relationship graph.

Modules:
    relationships  Closed registry of the five relationship kinds
    matching       Best-effort free-text → kind resolution (outside the registry)
    models         Document, RelationshipEdge, RevisionEntry
    revision_log   Append-only, validated revision history
    store          GraphStore with mirrored edges and transactional rollback
    backlinks      Reverse-side follow-up tasks per workflow session
    persistence    SQLite snapshot repository
"""

from docspine.graph.backlinks import BacklinkTask, BacklinkTracker
from docspine.graph.matching import MatchResult, RelationshipMatcher, SynonymMatcher
from docspine.graph.models import (
    Document,
    DocumentStatus,
    EdgeAction,
    RelationshipEdge,
    RevisionEntry,
)
from docspine.graph.persistence import GraphRepository
from docspine.graph.relationships import (
    RelationshipKind,
    RelationshipType,
    ReverseRelationship,
    classify,
    forward_types,
    reverse_of,
)
from docspine.graph.revision_log import (
    CREATED_DESCRIPTION,
    RevisionEntries,
    RevisionLogManager,
)
from docspine.graph.store import EdgeEvent, GraphStore

__all__ = [
    # Registry
    "RelationshipType",
    "ReverseRelationship",
    "RelationshipKind",
    "forward_types",
    "reverse_of",
    "classify",
    # Matching
    "RelationshipMatcher",
    "SynonymMatcher",
    "MatchResult",
    # Models
    "Document",
    "DocumentStatus",
    "EdgeAction",
    "RelationshipEdge",
    "RevisionEntry",
    # Revision log
    "CREATED_DESCRIPTION",
    "RevisionEntries",
    "RevisionLogManager",
    # Store
    "EdgeEvent",
    "GraphStore",
    # Backlinks
    "BacklinkTask",
    "BacklinkTracker",
    # Persistence
    "GraphRepository",
]
