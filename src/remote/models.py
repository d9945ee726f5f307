# src/remote/models.py — v1
"""Wire models for the remote generation capability.

Responses use camelCase keys; snake_case is accepted as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ridecoach.core.models import ALL_STEPS, SECTION_KEYS, SECTION_WIRE_KEYS


def _alias(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(camel, snake)


class StepResponse(BaseModel):
    """Parsed response of one remote step invocation."""

    model_config = ConfigDict(extra="allow")

    success: bool = True
    step: int | None = None
    error: str | None = None
    message: str | None = None
    retryable: bool | None = None

    from_cache: bool = Field(False, validation_alias=_alias("from_cache", "fromCache"))
    all_sections: bool = Field(False, validation_alias=_alias("all_sections", "allSections"))
    stale: bool = False
    stale_reason: str | None = Field(None, validation_alias=_alias("stale_reason", "staleReason"))
    event_prep_changed: bool | None = Field(
        None, validation_alias=_alias("event_prep_changed", "eventPrepChanged")
    )
    generated_at: datetime | None = Field(
        None, validation_alias=_alias("generated_at", "generatedAt")
    )
    data_snapshot: dict[str, Any] | None = Field(
        None, validation_alias=_alias("data_snapshot", "dataSnapshot")
    )

    test_requirements: Any = Field(
        None, validation_alias=_alias("test_requirements", "testRequirements")
    )
    readiness_analysis: Any = Field(
        None, validation_alias=_alias("readiness_analysis", "readinessAnalysis")
    )
    preparation_plan: Any = Field(
        None, validation_alias=_alias("preparation_plan", "preparationPlan")
    )
    show_day_guidance: Any = Field(
        None, validation_alias=_alias("show_day_guidance", "showDayGuidance")
    )

    @property
    def is_insufficient_data(self) -> bool:
        return not self.success and self.error == "insufficient_data"

    @property
    def is_full_cache_hit(self) -> bool:
        return self.success and self.from_cache and self.all_sections

    @property
    def data_snapshot_hash(self) -> str | None:
        if not self.data_snapshot:
            return None
        value = self.data_snapshot.get("hash")
        return str(value) if value is not None else None

    def section(self, step_number: int) -> Any:
        return getattr(self, SECTION_KEYS[step_number])

    def sections(self) -> dict[int, Any]:
        return {n: self.section(n) for n in ALL_STEPS}


def build_step_payload(
    source_plan_id: str,
    step_number: int,
    prior_results: dict[int, Any],
    force_refresh: bool = False,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the wire payload for one step invocation."""
    payload: dict[str, Any] = {
        "eventPrepPlanId": source_plan_id,
        "step": step_number,
    }
    if step_number == 1:
        payload["forceRefresh"] = force_refresh
    else:
        payload["priorResults"] = {
            SECTION_WIRE_KEYS[n]: prior_results[n] for n in range(1, step_number)
        }
    if extra:
        payload.update(extra)
    return payload
