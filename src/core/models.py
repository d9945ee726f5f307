# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
Step numbering: 1 test requirements, 2 readiness analysis,
3 preparation plan, 4 show-day guidance. Step 5 denotes completion.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

# === STEPS ===

STEP_COUNT = 4
COMPLETE_STEP = 5
ALL_STEPS: tuple[int, ...] = (1, 2, 3, 4)

SECTION_KEYS: dict[int, str] = {
    1: "test_requirements",
    2: "readiness_analysis",
    3: "preparation_plan",
    4: "show_day_guidance",
}

# camelCase keys used on the wire by the remote capability
SECTION_WIRE_KEYS: dict[int, str] = {
    1: "testRequirements",
    2: "readinessAnalysis",
    3: "preparationPlan",
    4: "showDayGuidance",
}

SECTION_TITLES: dict[int, str] = {
    1: "Test Requirements",
    2: "Readiness Analysis",
    3: "Preparation Plan",
    4: "Show-Day Guidance",
}

StepNumber = Annotated[int, Field(ge=1, le=STEP_COUNT)]
ErrorKind = Literal["insufficient_data", "transient", "fatal"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmm_{uuid4_short}."""
    ts = timestamp or _utcnow()
    return f"{ts.strftime('%Y%m%d_%H%M')}_{uuid.uuid4().hex[:5]}"


# === SOURCE PLAN ===


class HorseEntry(BaseModel):
    """One horse entered for the event, as far as generation is concerned."""

    horse_name: str = ""
    current_level: str = ""
    target_level: str = ""
    goals: list[str] | str | None = None
    concerns: list[str] | str | None = None


class SourcePlanSnapshot(BaseModel):
    """Generation-relevant fields of an event-prep plan record."""

    event_date: str = ""
    event_type: str = ""
    horses: list[HorseEntry] = Field(default_factory=list)
    plan_goals: list[Any] = Field(default_factory=list)
    riding_frequency: str | None = None
    coach_access: str | None = None
    constraints: str | list[str] | None = None
    rider_data_hash: str | None = None


class GenerationFingerprint(BaseModel):
    """Per-input-class hashes recorded when an artifact was generated."""

    plan_hash: str
    event_date: str
    event_type: str
    horses: str
    goals: str
    logistics: str
    rider_data: str | None = None


# === REQUEST ===


class GenerationRequest(BaseModel):
    """Input to a single orchestrator run."""

    source_plan_id: str = Field(min_length=1)
    force_refresh: bool = False
    start_from_step: StepNumber = 1
    prior_results: dict[int, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_prior_results(self) -> GenerationRequest:
        """Resuming past step 1 needs every earlier section payload."""
        missing = [
            n for n in range(1, self.start_from_step)
            if self.prior_results.get(n) is None
        ]
        if missing:
            raise ValueError(
                f"start_from_step={self.start_from_step} requires prior "
                f"results for steps {missing}"
            )
        return self


# === STEP OUTCOMES ===


class IncrementalResult(BaseModel):
    """A single step produced its own section."""

    kind: Literal["incremental"] = "incremental"
    step_number: StepNumber
    section_payload: Any
    data_snapshot_hash: str | None = None

    @property
    def success(self) -> bool:
        return True


class FullCacheHit(BaseModel):
    """Step 1 was answered from a cached artifact carrying all four sections."""

    kind: Literal["full_cache_hit"] = "full_cache_hit"
    step_number: Literal[1] = 1
    sections: dict[int, Any]
    generated_at: datetime | None = None
    stale: bool = False
    stale_reason: str | None = None
    reason_code: str | None = None

    @field_validator("sections")
    @classmethod
    def validate_complete(cls, v: dict[int, Any]) -> dict[int, Any]:
        _require_all_sections(v)
        return v

    @property
    def success(self) -> bool:
        return True


class StepFailure(BaseModel):
    """A step failed; error_kind drives the orchestrator's transition."""

    kind: Literal["failure"] = "failure"
    step_number: StepNumber
    error_kind: ErrorKind
    message: str = ""

    @property
    def success(self) -> bool:
        return False


StepOutcome = Annotated[
    Union[IncrementalResult, FullCacheHit, StepFailure],
    Field(discriminator="kind"),
]


# === ARTIFACT ===


class GeneratedArtifact(BaseModel):
    """Durable cached result. Always holds all four sections."""

    sections: dict[int, Any]
    generated_at: datetime = Field(default_factory=_utcnow)
    fingerprint: GenerationFingerprint | None = None
    version: int = 0

    @field_validator("sections")
    @classmethod
    def validate_complete(cls, v: dict[int, Any]) -> dict[int, Any]:
        _require_all_sections(v)
        return v

    def section(self, step_number: int) -> Any:
        return self.sections[step_number]


class CachedArtifact(BaseModel):
    """Artifact served from the store, with advisory staleness."""

    artifact: GeneratedArtifact
    stale: bool = False
    stale_reason: str | None = None
    reason_code: str | None = None


def _require_all_sections(sections: dict[int, Any]) -> None:
    missing = [n for n in ALL_STEPS if sections.get(n) is None]
    extra = [n for n in sections if n not in ALL_STEPS]
    if missing or extra:
        raise ValueError(
            f"artifact must hold exactly sections 1-4 "
            f"(missing={missing}, unexpected={extra})"
        )


# === RUN STATE ===


class RunMeta(BaseModel):
    """How the completed sections were obtained."""

    from_cache: bool = False
    stale: bool = False
    stale_reason: str | None = None
    reason_code: str | None = None
    generated_at: datetime | None = None


class IdlePhase(BaseModel):
    kind: Literal["idle"] = "idle"
    # Guidance shown when step 1 reported insufficient source data
    notice: str | None = None


class RunningPhase(BaseModel):
    kind: Literal["running"] = "running"
    step: StepNumber


class CompletePhase(BaseModel):
    kind: Literal["complete"] = "complete"
    meta: RunMeta = Field(default_factory=RunMeta)


class FailedPhase(BaseModel):
    kind: Literal["failed"] = "failed"
    step: StepNumber
    error_kind: Literal["transient", "fatal"]
    message: str = ""


RunPhase = Annotated[
    Union[IdlePhase, RunningPhase, CompletePhase, FailedPhase],
    Field(discriminator="kind"),
]

RunStatus = Literal["idle", "running", "complete", "failed"]


class RunState(BaseModel):
    """Working state of one generation attempt, owned by an orchestrator.

    The phase is a tagged union, so a failed step, an error kind and the
    cache metadata only exist in the phases where they are meaningful.
    """

    run_id: str = Field(default_factory=generate_run_id)
    source_plan_id: str = ""
    force_refresh: bool = False
    accumulated: dict[int, Any] = Field(default_factory=dict)
    rider_data_hash: str | None = None
    phase: RunPhase = Field(default_factory=IdlePhase)

    @property
    def status(self) -> RunStatus:
        return self.phase.kind

    @property
    def current_step(self) -> int:
        """0 idle, 1-4 running or failed at, 5 complete."""
        phase = self.phase
        if isinstance(phase, (RunningPhase, FailedPhase)):
            return phase.step
        if isinstance(phase, CompletePhase):
            return COMPLETE_STEP
        return 0

    @property
    def failed_step(self) -> int | None:
        return self.phase.step if isinstance(self.phase, FailedPhase) else None

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.phase.error_kind if isinstance(self.phase, FailedPhase) else None

    @property
    def meta(self) -> RunMeta:
        return self.phase.meta if isinstance(self.phase, CompletePhase) else RunMeta()

    @property
    def can_resume(self) -> bool:
        """Retrying the failed step is only offered for transient failures."""
        return isinstance(self.phase, FailedPhase) and self.phase.error_kind == "transient"

    @property
    def can_restart(self) -> bool:
        return self.status in ("failed", "complete")

    def prior_results_for(self, step_number: int) -> dict[int, Any]:
        """Accumulated payloads for every step before step_number."""
        return {n: self.accumulated[n] for n in range(1, step_number)}


# === PROGRESS EVENTS ===

EventKind = Literal["started", "completed", "failed", "cache_hit", "cancelled"]


class ProgressEvent(BaseModel):
    """One orchestrator transition, consumed by the presenter."""

    step: int = Field(ge=1, le=COMPLETE_STEP)
    kind: EventKind
    payload: Any = None
    error_kind: ErrorKind | None = None
    message: str | None = None
    meta: RunMeta | None = None
    # started(1) of a run that may still be answered from the cached artifact
    checking_cache: bool = False

    @property
    def is_terminal(self) -> bool:
        return (
            (self.kind == "completed" and self.step == COMPLETE_STEP)
            or self.kind in ("failed", "cancelled")
        )
