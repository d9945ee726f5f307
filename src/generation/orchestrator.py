# src/generation/orchestrator.py — v1
"""Generation orchestrator — the four-step state machine.

States and transitions:
  idle        → running(start)   start_generation(request)
  running(n)  → running(n+1)     step n produced its section
  running(1)  → complete         step 1 was a full cache hit (no save)
  running(4)  → complete         step 4 succeeded; artifact saved once
  running(n)  → failed(n)        transient or fatal failure
  running(n)  → idle             insufficient data (nothing to resume)
  failed(n)   → running(n)       resume_generation() (transient only)
  failed|complete → running(1)   restart_generation()

Runs are driven by the caller: start_generation() returns an async
iterator of ProgressEvents and the run advances as it is consumed.
Steps run strictly in order; each remote call is the only suspension
point. A CancellationToken is checked before every step and before the
final save, so a cancelled or abandoned run never persists anything.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, AsyncIterator

from ridecoach.core.errors import (
    ArtifactConflictError,
    ArtifactWriteError,
    GenerationInProgressError,
    GenerationStateError,
)
from ridecoach.core.models import (
    COMPLETE_STEP,
    STEP_COUNT,
    CachedArtifact,
    CompletePhase,
    FailedPhase,
    FullCacheHit,
    GeneratedArtifact,
    GenerationRequest,
    IdlePhase,
    ProgressEvent,
    RunMeta,
    RunningPhase,
    RunState,
    SourcePlanSnapshot,
    StepFailure,
    StepOutcome,
)
from ridecoach.generation.fingerprint import compute_fingerprint, load_plan_snapshot
from ridecoach.generation.staleness import StalenessEvaluator
from ridecoach.logging.context import clear_context, set_run_context, set_step_context

if TYPE_CHECKING:
    from ridecoach.documents.base_document_store import BaseDocumentStore
    from ridecoach.generation.executor import StepExecutor
    from ridecoach.store.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

_SAVE_FAILED_MESSAGE = "Your plan was generated but could not be saved. Please try again."
_CONFLICT_MESSAGE = (
    "This plan was regenerated elsewhere while you were waiting. "
    "Start over to generate it again."
)
_UNEXPECTED_MESSAGE = "An unexpected error occurred. Please start over."


class CancellationToken:
    """Cooperative cancellation flag, checked between steps."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class GenerationOrchestrator:
    """Sequence, cache, persist and recover the four-step generation.

    One orchestrator serves one open plan view and owns its RunState.

    Args:
        executor: Step executor bound to a remote capability. None gives a
            read-only orchestrator that can only serve cached artifacts.
        artifact_store: Where completed artifacts are persisted.
        staleness: Evaluator used by get_cached_if_fresh().
        document_store: Source of plan records for fingerprints. Optional.
        plan_collection: Collection holding plan records.
        optimistic_concurrency: Save with the version read at run start,
            turning a concurrent completed run into a conflict instead of
            silently overwriting it.
    """

    def __init__(
        self,
        executor: StepExecutor | None,
        artifact_store: BaseArtifactStore,
        staleness: StalenessEvaluator | None = None,
        document_store: BaseDocumentStore | None = None,
        plan_collection: str = "eventPrepPlans",
        optimistic_concurrency: bool = False,
    ) -> None:
        self._executor = executor
        self._store = artifact_store
        self._staleness = staleness or StalenessEvaluator()
        self._documents = document_store
        self._plan_collection = plan_collection
        self._optimistic = optimistic_concurrency
        self._state = RunState()
        self._last_request: GenerationRequest | None = None
        self._active_token: CancellationToken | None = None
        self._running = False

    @property
    def state(self) -> RunState:
        """Current run state. Treat as read-only."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start_generation(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Start a run and return its progress-event stream.

        Raises (on first iteration):
            GenerationInProgressError: If a run is already in progress.
        """
        return self._run(request, cancel_token, carry_from=None)

    def resume_generation(
        self, cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[ProgressEvent]:
        """Re-run the failed step, reusing the sections accumulated so far.

        Raises:
            GenerationStateError: If the last run did not fail transiently.
        """
        state = self._state
        if not isinstance(state.phase, FailedPhase) or self._last_request is None:
            raise GenerationStateError("Nothing to resume: the last run did not fail")
        if state.phase.error_kind != "transient":
            raise GenerationStateError(
                f"Step {state.phase.step} failed with a fatal error; start over instead"
            )

        failed_step = state.phase.step
        request = GenerationRequest(
            source_plan_id=state.source_plan_id,
            force_refresh=state.force_refresh,
            start_from_step=failed_step,
            prior_results=state.prior_results_for(failed_step),
        )
        logger.info("Resuming %s from step %d", state.source_plan_id, failed_step)
        return self._run(request, cancel_token, carry_from=state)

    def restart_generation(
        self,
        cancel_token: CancellationToken | None = None,
        force_refresh: bool | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Discard accumulated sections and run again from step 1.

        Raises:
            GenerationStateError: If no run has been started yet, or one is running.
        """
        if self._last_request is None:
            raise GenerationStateError("Nothing to restart: no run has been started")
        if self._running:
            raise GenerationInProgressError(
                f"A run for '{self._state.source_plan_id}' is in progress"
            )
        request = GenerationRequest(
            source_plan_id=self._last_request.source_plan_id,
            force_refresh=(
                self._last_request.force_refresh if force_refresh is None else force_refresh
            ),
        )
        logger.info("Restarting %s from step 1", request.source_plan_id)
        return self._run(request, cancel_token, carry_from=None)

    def cancel(self) -> None:
        """Cancel the run in progress, if any. Takes effect before the next step."""
        if self._active_token is not None:
            self._active_token.cancel()

    async def run(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None = None,
    ) -> RunState:
        """Drive a run to its end, ignoring intermediate events."""
        async for _ in self.start_generation(request, cancel_token):
            pass
        return self._state

    async def get_cached_if_fresh(
        self,
        source_plan_id: str,
        snapshot: SourcePlanSnapshot | None = None,
        now: datetime | None = None,
    ) -> CachedArtifact | None:
        """Serve the persisted artifact without a remote round trip.

        Staleness is advisory: a stale artifact is still returned, flagged
        with a reason. Returns None only when nothing is stored.
        """
        artifact = await self._store.get_artifact(source_plan_id)
        if artifact is None:
            return None

        if snapshot is None:
            snapshot = await self._load_snapshot(source_plan_id)
        if snapshot is None:
            logger.debug("No plan snapshot for %s; checking age only", source_plan_id)

        verdict = self._staleness.evaluate(artifact, snapshot, now=now)
        return CachedArtifact(
            artifact=artifact,
            stale=verdict.stale,
            stale_reason=verdict.reason,
            reason_code=verdict.reason_code,
        )

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def _run(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None,
        carry_from: RunState | None,
    ) -> AsyncIterator[ProgressEvent]:
        if self._running:
            raise GenerationInProgressError(
                f"A run for '{self._state.source_plan_id}' is in progress"
            )
        if self._executor is None:
            raise GenerationStateError("No remote generation capability configured")
        self._running = True
        token = cancel_token or CancellationToken()
        self._active_token = token
        self._last_request = request

        state = RunState(
            source_plan_id=request.source_plan_id,
            force_refresh=request.force_refresh,
            accumulated={
                n: payload for n, payload in request.prior_results.items()
                if n < request.start_from_step
            },
            rider_data_hash=carry_from.rider_data_hash if carry_from else None,
        )
        self._state = state
        set_run_context(state.source_plan_id, state.run_id)
        start = time.monotonic()
        logger.info(
            "Generation started for %s at step %d (force_refresh=%s)",
            state.source_plan_id, request.start_from_step, request.force_refresh,
        )

        try:
            snapshot = await self._load_snapshot(state.source_plan_id)
            expected_version = (
                await self._store.get_version(state.source_plan_id)
                if self._optimistic else None
            )

            for step in range(request.start_from_step, STEP_COUNT + 1):
                if token.cancelled:
                    yield self._cancel(state, step)
                    return

                state.phase = RunningPhase(step=step)
                set_step_context(step)
                yield ProgressEvent(
                    step=step,
                    kind="started",
                    checking_cache=step == 1 and not state.force_refresh,
                )

                outcome = await self._execute_step(step, state)

                if isinstance(outcome, FullCacheHit):
                    for event in self._complete_from_cache(state, outcome):
                        yield event
                    return

                if isinstance(outcome, StepFailure):
                    yield self._fail(state, outcome)
                    return

                state.accumulated[step] = outcome.section_payload
                if step == 1:
                    state.rider_data_hash = outcome.data_snapshot_hash
                yield ProgressEvent(step=step, kind="completed", payload=outcome.section_payload)

            set_step_context(None)
            if token.cancelled:
                yield self._cancel(state, COMPLETE_STEP)
                return

            yield await self._persist(state, snapshot, expected_version)

        finally:
            if isinstance(state.phase, RunningPhase):
                # Consumer stopped iterating mid-run: abandon it
                logger.info("Run abandoned at step %d", state.phase.step)
                state.phase = IdlePhase()
            self._running = False
            self._active_token = None
            logger.info(
                "Generation ended for %s: %s in %.1fs",
                state.source_plan_id, state.status, time.monotonic() - start,
            )
            clear_context()

    async def _execute_step(self, step: int, state: RunState) -> StepOutcome:
        try:
            return await self._executor.run_step(
                step,
                state.source_plan_id,
                state.prior_results_for(step),
                force_refresh=state.force_refresh if step == 1 else False,
            )
        except Exception:
            logger.exception("Step %d raised unexpectedly", step)
            return StepFailure(
                step_number=step,
                error_kind="fatal",
                message=_UNEXPECTED_MESSAGE,
            )

    def _complete_from_cache(
        self, state: RunState, hit: FullCacheHit
    ) -> list[ProgressEvent]:
        meta = RunMeta(
            from_cache=True,
            stale=hit.stale,
            stale_reason=hit.stale_reason,
            reason_code=hit.reason_code,
            generated_at=hit.generated_at,
        )
        state.accumulated = dict(hit.sections)
        state.phase = CompletePhase(meta=meta)
        logger.info("Served from cache (stale=%s)", hit.stale)
        return [
            ProgressEvent(step=1, kind="cache_hit", payload=dict(hit.sections), meta=meta),
            ProgressEvent(
                step=COMPLETE_STEP, kind="completed", payload=dict(hit.sections), meta=meta
            ),
        ]

    def _fail(self, state: RunState, failure: StepFailure) -> ProgressEvent:
        if failure.error_kind == "insufficient_data":
            # Nothing to resume: the plan itself lacks source data
            state.accumulated = {}
            state.phase = IdlePhase(notice=failure.message)
            logger.info("Insufficient data at step %d", failure.step_number)
        else:
            state.phase = FailedPhase(
                step=failure.step_number,
                error_kind=failure.error_kind,
                message=failure.message,
            )
            logger.warning(
                "Run failed at step %d (%s)", failure.step_number, failure.error_kind
            )
        return ProgressEvent(
            step=failure.step_number,
            kind="failed",
            error_kind=failure.error_kind,
            message=failure.message,
        )

    def _cancel(self, state: RunState, step: int) -> ProgressEvent:
        logger.info("Run cancelled before step %d", step)
        state.phase = IdlePhase()
        return ProgressEvent(step=step, kind="cancelled")

    async def _persist(
        self,
        state: RunState,
        snapshot: SourcePlanSnapshot | None,
        expected_version: int | None,
    ) -> ProgressEvent:
        if snapshot is not None and state.rider_data_hash is not None:
            snapshot = snapshot.model_copy(update={"rider_data_hash": state.rider_data_hash})
        artifact = GeneratedArtifact(
            sections=dict(state.accumulated),
            generated_at=datetime.now(timezone.utc),
            fingerprint=compute_fingerprint(snapshot) if snapshot is not None else None,
        )
        try:
            stored = await self._store.save_artifact(
                state.source_plan_id, artifact, expected_version=expected_version
            )
        except ArtifactConflictError as e:
            logger.warning("Artifact conflict: %s", e)
            return self._fail(
                state,
                StepFailure(step_number=STEP_COUNT, error_kind="fatal", message=_CONFLICT_MESSAGE),
            )
        except ArtifactWriteError as e:
            logger.error("Artifact save failed: %s", e)
            return self._fail(
                state,
                StepFailure(
                    step_number=STEP_COUNT, error_kind="transient", message=_SAVE_FAILED_MESSAGE
                ),
            )

        meta = RunMeta(from_cache=False, generated_at=stored.generated_at)
        state.phase = CompletePhase(meta=meta)
        return ProgressEvent(
            step=COMPLETE_STEP, kind="completed", payload=dict(stored.sections), meta=meta
        )

    async def _load_snapshot(self, source_plan_id: str) -> SourcePlanSnapshot | None:
        if self._documents is None:
            return None
        return await load_plan_snapshot(
            self._documents, self._plan_collection, source_plan_id
        )
