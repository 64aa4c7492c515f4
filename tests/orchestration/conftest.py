"""Shared fixtures for orchestration tests."""

import pytest

from docspine.orchestration import (
    ChangeRequest,
    EdgeChange,
    Observation,
    Scope,
    TaskComplexity,
    WorkflowEngine,
)


@pytest.fixture
def version_observation() -> Observation:
    """Single text edit on ADR-100's Decision section."""
    return Observation(
        scope=Scope("ADR-100", "Decision"),
        evidence="PostgreSQL 12 reached end of life (vendor release notes)",
        technique="Update stale fact",
        before_text="PostgreSQL 12",
        after_text="PostgreSQL 16",
        description="Decision updated to PostgreSQL 16",
    )


@pytest.fixture
def link_observation() -> Observation:
    """Edge-only card: ADR-101 depends on ADR-100."""
    return Observation(
        scope="ADR-101",
        evidence="Pool sizing assumes the database chosen in ADR-100",
        technique="Record relationship",
        edge_changes=(EdgeChange.add("ADR-101", "ADR-100", "Depends on"),),
        description="Added Depends on ADR-100",
    )


@pytest.fixture
def complex_request() -> ChangeRequest:
    return ChangeRequest("Revise persistence ADRs", complexity=TaskComplexity.COMPLEX)


@pytest.fixture
def make_engine(adr_store, content, tracker, settings):
    """Factory for engines sharing the fixture store, content and tracker."""

    def factory(**kwargs) -> WorkflowEngine:
        params = {"content": content, "tracker": tracker, "settings": settings}
        params.update(kwargs)
        return WorkflowEngine(adr_store, **params)

    return factory


@pytest.fixture
def planned(engine, complex_request):
    """Factory: start a complex session and plan the given observations."""

    def factory(*observations):
        session = engine.start(complex_request)
        engine.triage(session)
        engine.record_observations(session, observations)
        engine.plan(session)
        return session

    return factory
