# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides section payloads, plan records, scripted remote capabilities and
in-memory stores. No external dependencies — all I/O is mocked.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from ridecoach.core.models import GeneratedArtifact, SECTION_WIRE_KEYS
from ridecoach.documents.memory_store import MemoryDocumentStore
from ridecoach.generation.executor import StepExecutor
from ridecoach.generation.orchestrator import GenerationOrchestrator
from ridecoach.remote.base_remote import BaseRemoteGeneration
from ridecoach.store.document_store import DocumentArtifactStore

PLAN_ID = "plan_001"


# === FIXTURES: Sample data ===


@pytest.fixture
def sections() -> dict[int, Any]:
    """One payload per section, keyed by step number."""
    return {
        1: {"tests": ["Training Level Test 1", "Training Level Test 2"]},
        2: {"readiness": "mostly ready", "gaps": ["stretchy circle"]},
        3: {"weeks": [{"week": 1, "focus": "transitions"}]},
        4: {"warmup": "20 minutes", "checklist": ["number", "bridle tag"]},
    }


@pytest.fixture
def plan_record() -> dict[str, Any]:
    """Event-prep plan record as stored in the plan collection."""
    return {
        "id": PLAN_ID,
        "eventDate": "2026-11-14",
        "eventType": "schooling-show",
        "horses": [
            {
                "horseName": "Biscuit",
                "currentLevel": "training",
                "targetLevel": "first",
                "goals": ["relaxed free walk"],
                "concerns": "spooky at C",
            }
        ],
        "goals": ["score above 65%"],
        "ridingFrequency": "4x/week",
        "coachAccess": "weekly",
        "constraints": "no trailer midweek",
    }


@pytest.fixture
def artifact(sections) -> GeneratedArtifact:
    return GeneratedArtifact(
        sections=sections,
        generated_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


# === FIXTURES: Remote responses ===


@pytest.fixture
def step_response(sections) -> Callable[..., dict[str, Any]]:
    """Build a successful wire response for one step."""

    def _build(step: int, payload: Any = None, **extra: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": True,
            "step": step,
            SECTION_WIRE_KEYS[step]: sections[step] if payload is None else payload,
        }
        body.update(extra)
        return body

    return _build


@pytest.fixture
def cache_hit_response(sections) -> Callable[..., dict[str, Any]]:
    """Build a step-1 response carrying all four cached sections.

    The remote reports staleness as a reason code in staleReason
    ("event_plan_changed" or "rider_data_changed") plus eventPrepChanged.
    """

    def _build(
        stale: bool = False,
        stale_reason: str | None = None,
        event_prep_changed: bool | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": True,
            "step": 1,
            "fromCache": True,
            "allSections": True,
            "stale": stale,
            "staleReason": stale_reason,
            "generatedAt": "2026-10-01T12:00:00Z",
        }
        if event_prep_changed is not None:
            body["eventPrepChanged"] = event_prep_changed
        for n, key in SECTION_WIRE_KEYS.items():
            body[key] = sections[n]
        return body

    return _build


@pytest.fixture
def make_remote() -> Callable[..., MagicMock]:
    """Remote capability answering each invocation from a script.

    Items are returned in order; exception instances are raised instead.
    """

    def _build(*responses: Any) -> MagicMock:
        remote = MagicMock(spec=BaseRemoteGeneration)
        remote.provider_name = "fake"
        remote.invoke = AsyncMock(side_effect=list(responses))
        return remote

    return _build


@pytest.fixture
def full_run_remote(make_remote, step_response) -> Callable[..., MagicMock]:
    """Remote producing four incremental sections."""

    def _build() -> MagicMock:
        return make_remote(*(step_response(n) for n in (1, 2, 3, 4)))

    return _build


# === FIXTURES: Stores and orchestrator ===


@pytest.fixture
def document_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def artifact_store(document_store) -> DocumentArtifactStore:
    return DocumentArtifactStore(document_store)


@pytest.fixture
def make_orchestrator(document_store, artifact_store) -> Callable[..., GenerationOrchestrator]:
    """Orchestrator over in-memory stores and the given remote."""

    def _build(remote: BaseRemoteGeneration, **kwargs: Any) -> GenerationOrchestrator:
        kwargs.setdefault("document_store", document_store)
        return GenerationOrchestrator(StepExecutor(remote), artifact_store, **kwargs)

    return _build
