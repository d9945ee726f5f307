# src/generation/staleness.py — v2
"""Advisory staleness of cached artifacts.

A stale artifact is still served and displayed; the verdict only feeds a
banner. Regeneration happens exclusively on an explicit force refresh.

Rules, checked in order:
  1. Any plan input class changed       → "event_plan_changed"
  2. Older than max_age_days            → "expired"
  3. No inputs recorded with artifact   → "unknown_inputs"
  4. Rider data changed, past grace     → "rider_data_changed"
  5. Otherwise                          → fresh

Without a plan snapshot only the age rule can apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ridecoach.core.models import GeneratedArtifact, SourcePlanSnapshot
from ridecoach.generation.fingerprint import PLAN_INPUT_CLASSES, compute_fingerprint

logger = logging.getLogger(__name__)

DEFAULT_GRACE_DAYS = 7.0
DEFAULT_MAX_AGE_DAYS = 30.0

# Banner text per reason code, also used for codes sent by the remote
STALE_REASON_MESSAGES: dict[str, str] = {
    "event_plan_changed": "Your event details have changed since this plan was generated.",
    "rider_data_changed": "You have new training data since this plan was generated.",
    "expired": "This plan is more than a month old.",
    "unknown_inputs": (
        "This plan was saved without the event details it was based on, "
        "so changes to them cannot be detected."
    ),
}

_INPUT_LABELS: dict[str, str] = {
    "event_date": "date",
    "event_type": "type",
    "horses": "horses",
    "goals": "goals",
    "logistics": "training logistics",
}


def describe_stale_reason(reason_code: str | None) -> str | None:
    """Readable text for a staleness reason code, None if the code is unknown."""
    if reason_code is None:
        return None
    return STALE_REASON_MESSAGES.get(reason_code)


@dataclass(frozen=True)
class StalenessVerdict:
    """Outcome of a staleness check."""

    stale: bool
    reason: str | None = None
    reason_code: str | None = None
    changed_inputs: tuple[str, ...] = field(default_factory=tuple)


FRESH = StalenessVerdict(stale=False)


class StalenessEvaluator:
    """Compare an artifact's recorded fingerprint with the current plan.

    Args:
        grace_days: Rider-data drift younger than this is ignored.
        max_age_days: Artifacts older than this are always stale.
    """

    def __init__(
        self,
        grace_days: float = DEFAULT_GRACE_DAYS,
        max_age_days: float = DEFAULT_MAX_AGE_DAYS,
    ) -> None:
        if grace_days > max_age_days:
            raise ValueError("grace_days must be <= max_age_days")
        self._grace_days = grace_days
        self._max_age_days = max_age_days

    def evaluate(
        self,
        artifact: GeneratedArtifact,
        snapshot: SourcePlanSnapshot | None = None,
        now: datetime | None = None,
    ) -> StalenessVerdict:
        """Decide whether a cached artifact is stale and why."""
        recorded = artifact.fingerprint
        current = compute_fingerprint(snapshot) if snapshot is not None else None
        age_days = _age_days(artifact.generated_at, now)

        changed: tuple[str, ...] = ()
        if recorded is not None and current is not None and recorded.plan_hash != current.plan_hash:
            changed = tuple(
                name for name in PLAN_INPUT_CLASSES
                if getattr(recorded, name) != getattr(current, name)
            )

        if changed:
            verdict = StalenessVerdict(
                stale=True,
                reason=_plan_changed_reason(changed),
                reason_code="event_plan_changed",
                changed_inputs=changed,
            )
        elif age_days > self._max_age_days:
            verdict = StalenessVerdict(
                stale=True,
                reason=f"This plan was generated {int(age_days)} days ago.",
                reason_code="expired",
            )
        elif recorded is None and current is not None:
            verdict = StalenessVerdict(
                stale=True,
                reason=STALE_REASON_MESSAGES["unknown_inputs"],
                reason_code="unknown_inputs",
            )
        elif (
            recorded is not None
            and current is not None
            and recorded.rider_data is not None
            and current.rider_data is not None
            and recorded.rider_data != current.rider_data
            and age_days >= self._grace_days
        ):
            verdict = StalenessVerdict(
                stale=True,
                reason=STALE_REASON_MESSAGES["rider_data_changed"],
                reason_code="rider_data_changed",
                changed_inputs=("rider_data",),
            )
        else:
            verdict = FRESH

        logger.debug(
            "Staleness: stale=%s code=%s age=%.1fd changed=%s snapshot=%s",
            verdict.stale, verdict.reason_code, age_days,
            list(verdict.changed_inputs), snapshot is not None,
        )
        return verdict


def _plan_changed_reason(changed: tuple[str, ...]) -> str:
    labels = [_INPUT_LABELS[name] for name in changed]
    if len(labels) == 1:
        joined = labels[0]
    else:
        joined = ", ".join(labels[:-1]) + " and " + labels[-1]
    return f"The event's {joined} changed since this plan was generated."


def _age_days(generated_at: datetime, now: datetime | None) -> float:
    now = now or datetime.now(timezone.utc)
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max((now - generated_at).total_seconds() / 86400.0, 0.0)
