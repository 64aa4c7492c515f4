"""
Shared pytest fixtures for doc-spine tests.

This module provides:
- A GraphStore with a fixed, advanceable revision clock
- The ADR-100 / ADR-101 pair used by the scenario tests
- Content store, settings and engine wiring

Usage:
    Fixtures are auto-discovered by pytest; request them as arguments.
"""

from datetime import date, timedelta
from pathlib import Path

import pytest

from docspine.core.settings import EngineSettings, get_settings
from docspine.graph import BacklinkTracker, GraphStore
from docspine.orchestration import (
    InMemoryContentStore,
    ProposalBuilder,
    WorkflowEngine,
)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "scenario" in str(test_path) or "persistence" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache():
    """Each test sees a fresh get_settings() instance."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(simple_max_proposals=3, json_logs=False)


# =============================================================================
# Graph
# =============================================================================


class FixedClock:
    """Deterministic revision-date source; ``advance`` moves it forward."""

    def __init__(self, today: date = date(2024, 1, 15)):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> date:
        self.today = self.today + timedelta(days=days)
        return self.today


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(clock: FixedClock) -> GraphStore:
    """Empty graph store dated by the fixed clock."""
    return GraphStore(clock=clock)


@pytest.fixture
def adr_store(store: GraphStore) -> GraphStore:
    """Store with ADR-100 and ADR-101 registered."""
    store.register_document("ADR-100", "Use PostgreSQL for persistence")
    store.register_document("ADR-101", "Connection pooling strategy")
    return store


@pytest.fixture
def tracker() -> BacklinkTracker:
    return BacklinkTracker()


# =============================================================================
# Orchestration
# =============================================================================


ADR_100_BODY = (
    "# ADR-100: Use PostgreSQL for persistence\n"
    "\n"
    "## Context\n"
    "We need a relational store with strong consistency.\n"
    "\n"
    "## Decision\n"
    "Use PostgreSQL 12 for all services.\n"
)

ADR_101_BODY = (
    "# ADR-101: Connection pooling strategy\n"
    "\n"
    "## Decision\n"
    "Pool connections with a fixed size of 10.\n"
)


@pytest.fixture
def content() -> InMemoryContentStore:
    return InMemoryContentStore({"ADR-100": ADR_100_BODY, "ADR-101": ADR_101_BODY})


@pytest.fixture
def builder(content: InMemoryContentStore) -> ProposalBuilder:
    return ProposalBuilder(content)


@pytest.fixture
def engine(
    adr_store: GraphStore,
    content: InMemoryContentStore,
    tracker: BacklinkTracker,
    settings: EngineSettings,
) -> WorkflowEngine:
    """Engine without an approval channel; tests drive approve() directly."""
    return WorkflowEngine(adr_store, content=content, tracker=tracker, settings=settings)
