# src/generation/fingerprint.py — v1
"""Generation-input fingerprinting for event-prep plans.

Only the plan fields that shape the generated sections are hashed, so
unrelated edits (packing lists, post-event notes) never mark an artifact
stale. Each input class is hashed separately so the staleness evaluator
can say *which* class changed.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

from ridecoach.core.models import GenerationFingerprint, HorseEntry, SourcePlanSnapshot

if TYPE_CHECKING:
    from ridecoach.documents.base_document_store import BaseDocumentStore

# Input classes compared one by one, in display order
PLAN_INPUT_CLASSES: tuple[str, ...] = (
    "event_date",
    "event_type",
    "horses",
    "goals",
    "logistics",
)


def compute_fingerprint(snapshot: SourcePlanSnapshot) -> GenerationFingerprint:
    """Hash every generation-relevant input class of a plan snapshot."""
    parts = _input_parts(snapshot)
    return GenerationFingerprint(
        plan_hash=_short_hash(parts),
        rider_data=snapshot.rider_data_hash,
        **{name: _short_hash(value) for name, value in parts.items()},
    )


def snapshot_from_record(record: dict[str, Any]) -> SourcePlanSnapshot:
    """Build a snapshot from a stored plan record.

    Accepts the multi-horse format (`horses` list) and the legacy
    single-horse format (`horseName`/`level` on the plan itself).
    """
    horses_raw = record.get("horses") or []
    if not horses_raw and (record.get("horseName") or record.get("level")):
        horses_raw = [{
            "horseName": record.get("horseName", ""),
            "currentLevel": record.get("currentLevel") or record.get("level", ""),
            "targetLevel": record.get("targetLevel") or record.get("level", ""),
        }]

    horses = [
        HorseEntry(
            horse_name=_get(h, "horseName", "horse_name") or "",
            current_level=_get(h, "currentLevel", "current_level") or "",
            target_level=_get(h, "targetLevel", "target_level") or "",
            goals=h.get("goals"),
            concerns=h.get("concerns"),
        )
        for h in horses_raw
        if isinstance(h, dict)
    ]

    return SourcePlanSnapshot(
        event_date=_get(record, "eventDate", "event_date") or "",
        event_type=_get(record, "eventType", "event_type") or "",
        horses=horses,
        plan_goals=list(record.get("goals") or []),
        riding_frequency=_get(record, "ridingFrequency", "riding_frequency"),
        coach_access=_get(record, "coachAccess", "coach_access"),
        constraints=record.get("constraints"),
        rider_data_hash=_get(record, "riderDataHash", "rider_data_hash"),
    )


async def load_plan_snapshot(
    document_store: BaseDocumentStore,
    collection: str,
    source_plan_id: str,
) -> SourcePlanSnapshot | None:
    """Read a plan record and turn it into a snapshot. None if missing."""
    record = await document_store.read(collection, source_plan_id)
    if record is None:
        return None
    return snapshot_from_record(record)


def _input_parts(snapshot: SourcePlanSnapshot) -> dict[str, Any]:
    return {
        "event_date": snapshot.event_date,
        "event_type": snapshot.event_type,
        "horses": [
            [h.horse_name, h.current_level, h.target_level] for h in snapshot.horses
        ],
        "goals": {
            "plan": snapshot.plan_goals,
            "horses": [[h.horse_name, h.goals, h.concerns] for h in snapshot.horses],
        },
        "logistics": [
            snapshot.riding_frequency,
            snapshot.coach_access,
            snapshot.constraints,
        ],
    }


def _short_hash(value: Any) -> str:
    """12-char hex digest of a canonical JSON encoding."""
    encoded = json.dumps(value, sort_keys=True, default=str).encode("utf-8")
    return hashlib.md5(encoded).hexdigest()[:12]  # noqa: S324


def _get(data: dict[str, Any], camel: str, snake: str) -> Any:
    value = data.get(camel)
    return value if value is not None else data.get(snake)
