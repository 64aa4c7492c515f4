"""
doc-spine - typed document relationships and phased, human-gated revisions.

Subpackages:
- docspine.core: Errors, logging, settings, storage primitives
- docspine.graph: Relationship registry, revision logs, mirrored graph store, backlinks
- docspine.orchestration: Change proposals, approval gate, workflow engine
"""

__version__ = "0.1.0"

from docspine.graph import GraphStore, RelationshipType, ReverseRelationship  # noqa: E402
from docspine.orchestration import (  # noqa: E402
    ChangeRequest,
    Observation,
    WorkflowEngine,
    WorkflowPhase,
)

__all__ = [
    "__version__",
    "GraphStore",
    "RelationshipType",
    "ReverseRelationship",
    "ChangeRequest",
    "Observation",
    "WorkflowEngine",
    "WorkflowPhase",
]
