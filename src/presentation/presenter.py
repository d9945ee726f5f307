# src/presentation/presenter.py — v1
"""Progressive presenter — render sections as soon as each step lands.

Consumes the orchestrator's ProgressEvents and keeps one slot per
section. A slot shows a loading indicator while its step runs, then its
payload. While step 1 may still be answered from the cached plan, no
slot is marked loading. Earlier sections stay visible while later steps
run and after a later step fails. The presenter derives everything from
events; it never calls the remote or the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterable, Literal

from ridecoach.core.models import (
    ALL_STEPS,
    COMPLETE_STEP,
    SECTION_TITLES,
    STEP_COUNT,
    CachedArtifact,
    ErrorKind,
    ProgressEvent,
    RunMeta,
)
from ridecoach.generation.staleness import describe_stale_reason

logger = logging.getLogger(__name__)

SlotStatus = Literal["pending", "loading", "ready", "skipped", "error"]


@dataclass
class SectionSlot:
    """Display state of one section."""

    title: str
    status: SlotStatus = "pending"
    payload: object = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @property
    def visible(self) -> bool:
        return self.status == "ready"


class ProgressivePresenter:
    """Turn a stream of ProgressEvents into per-section display state."""

    def __init__(self) -> None:
        self._slots: dict[int, SectionSlot] = {}
        self._meta: RunMeta | None = None
        self._failed_step: int | None = None
        self._error_kind: ErrorKind | None = None
        self._error_message: str | None = None
        self._notice: str | None = None
        self._complete = False
        self._running = False
        self._checking_cache = False
        self.reset()

    def reset(self) -> None:
        self._slots = {n: SectionSlot(title=SECTION_TITLES[n]) for n in ALL_STEPS}
        self._meta = None
        self._failed_step = None
        self._error_kind = None
        self._error_message = None
        self._notice = None
        self._complete = False
        self._running = False
        self._checking_cache = False

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def apply(self, event: ProgressEvent) -> None:
        kind = event.kind
        if kind == "started":
            if event.step == 1:
                self.reset()
            else:
                self._clear_error()
            self._running = True
            # A cache hit fills every slot at once, so nothing shows as loading yet
            self._checking_cache = event.checking_cache
            if not event.checking_cache:
                self._slots[event.step].status = "loading"
        elif kind == "completed" and event.step == COMPLETE_STEP:
            if isinstance(event.payload, dict):
                for n, payload in event.payload.items():
                    self._fill(int(n), payload)
            self._meta = event.meta
            self._complete = True
            self._running = False
        elif kind == "completed":
            self._fill(event.step, event.payload)
        elif kind == "cache_hit":
            if isinstance(event.payload, dict):
                for n, payload in event.payload.items():
                    self._fill(int(n), payload)
            self._meta = event.meta
        elif kind == "failed":
            self._running = False
            if event.error_kind == "insufficient_data":
                self._skip_unfinished()
                self._notice = event.message
            else:
                if event.step <= STEP_COUNT:
                    slot = self._slots[event.step]
                    slot.status = "error"
                    slot.error_kind = event.error_kind
                    slot.message = event.message
                self._failed_step = min(event.step, STEP_COUNT)
                self._error_kind = event.error_kind
                self._error_message = event.message
        elif kind == "cancelled":
            self._running = False
            self._skip_unfinished()
        if kind != "started":
            self._checking_cache = False
        logger.debug("Presenter applied %s@%d", kind, event.step)

    async def consume(self, events: AsyncIterable[ProgressEvent]) -> None:
        """Apply every event of a run as it arrives."""
        async for event in events:
            self.apply(event)

    def show_cached(self, cached: CachedArtifact) -> None:
        """Display a persisted artifact fetched without running generation."""
        self.reset()
        for n in ALL_STEPS:
            self._fill(n, cached.artifact.section(n))
        self._meta = RunMeta(
            from_cache=True,
            stale=cached.stale,
            stale_reason=cached.stale_reason,
            reason_code=cached.reason_code,
            generated_at=cached.artifact.generated_at,
        )
        self._complete = True

    # ------------------------------------------------------------------
    # Derived display state
    # ------------------------------------------------------------------

    @property
    def slots(self) -> dict[int, SectionSlot]:
        return self._slots

    def slot(self, step_number: int) -> SectionSlot:
        return self._slots[step_number]

    @property
    def sections_ready(self) -> int:
        return sum(1 for s in self._slots.values() if s.status == "ready")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def header(self) -> str | None:
        """Progress header, shown only while a run is in flight."""
        if not self._running:
            return None
        if self._checking_cache:
            return "Loading your plan..."
        return f"Generating... ({self.sections_ready} of {STEP_COUNT} sections complete)"

    @property
    def stale_banner(self) -> str | None:
        if self._meta is None or not self._meta.stale:
            return None
        reason = (
            self._meta.stale_reason
            or describe_stale_reason(self._meta.reason_code)
            or "Your plan inputs changed since it was generated."
        )
        return f"{reason} Regenerate to refresh this plan."

    @property
    def from_cache(self) -> bool:
        return bool(self._meta and self._meta.from_cache)

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def show_retry_step(self) -> bool:
        """Offer "retry this step" only past step 1 and only for transient failures."""
        return (
            self._error_kind == "transient"
            and self._failed_step is not None
            and self._failed_step > 1
        )

    @property
    def show_start_over(self) -> bool:
        return self._failed_step is not None or self._complete

    @property
    def notice(self) -> str | None:
        """Insufficient-data notice shown in place of the skipped sections."""
        return self._notice

    def _fill(self, step_number: int, payload: object) -> None:
        slot = self._slots[step_number]
        slot.status = "ready"
        slot.payload = payload
        slot.error_kind = None
        slot.message = None

    def _skip_unfinished(self) -> None:
        for slot in self._slots.values():
            if slot.status != "ready":
                slot.status = "skipped"

    def _clear_error(self) -> None:
        self._failed_step = None
        self._error_kind = None
        self._error_message = None
        self._notice = None
