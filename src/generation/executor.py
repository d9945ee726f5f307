# src/generation/executor.py — v1
"""Step executor — run one generation step against the remote capability.

Never raises for expected failure modes: insufficient data, remote errors
and malformed responses all come back as a StepFailure. Missing prior
results are a caller error (MissingPriorResultsError). Anything else
propagates to the orchestrator.

The executor holds no cache. On step 1 it only forwards force_refresh; the
remote side decides whether it can answer from cache.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import ValidationError

from ridecoach.core.errors import MissingPriorResultsError
from ridecoach.core.models import (
    SECTION_KEYS,
    STEP_COUNT,
    FullCacheHit,
    IncrementalResult,
    StepFailure,
    StepOutcome,
)
from ridecoach.generation.staleness import describe_stale_reason
from ridecoach.remote.base_remote import BaseRemoteGeneration
from ridecoach.remote.models import StepResponse, build_step_payload
from ridecoach.remote.retry import RetryConfig, StepRetryExhausted, user_message, with_retry

logger = logging.getLogger(__name__)

_MALFORMED_MESSAGE = (
    "We received an unusual response from our AI. A retry usually fixes this."
)
_INSUFFICIENT_DATA_MESSAGE = (
    "We need a bit more data to generate this plan. Please complete your "
    "rider profile, add a horse profile and submit a few post-ride debriefs."
)


class StepExecutor:
    """Invoke the remote generator for one step.

    Args:
        remote: Remote generation capability.
        retry_config: Automatic retry policy for transient remote errors.
    """

    def __init__(
        self,
        remote: BaseRemoteGeneration,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._remote = remote
        self._retry_config = retry_config or RetryConfig()

    async def run_step(
        self,
        step_number: int,
        source_plan_id: str,
        prior_results: dict[int, Any],
        force_refresh: bool = False,
        **extra: Any,
    ) -> StepOutcome:
        """Run one step and map the response onto a StepOutcome.

        Raises:
            ValueError: If step_number is outside 1-4.
            MissingPriorResultsError: If an earlier section payload is absent.
        """
        if not 1 <= step_number <= STEP_COUNT:
            raise ValueError(f"step_number must be 1-{STEP_COUNT}, got {step_number}")
        missing = [n for n in range(1, step_number) if prior_results.get(n) is None]
        if missing:
            raise MissingPriorResultsError(step_number, missing)

        payload = build_step_payload(
            source_plan_id,
            step_number,
            prior_results,
            force_refresh=force_refresh and step_number == 1,
            extra=extra or None,
        )

        logger.info(
            "Step %d (%s): invoking %s",
            step_number, SECTION_KEYS[step_number], self._remote.provider_name,
        )
        t0 = time.monotonic()
        try:
            raw = await with_retry(
                self._remote.invoke,
                step_number,
                payload,
                step_number=step_number,
                config=self._retry_config,
            )
        except StepRetryExhausted as e:
            logger.warning(
                "Step %d failed (%s) after %d attempt(s): %s",
                step_number, e.error_kind, e.attempts, e.last_error,
            )
            return StepFailure(
                step_number=step_number,
                error_kind=e.error_kind,
                message=user_message(e.last_error),
            )
        elapsed_ms = int((time.monotonic() - t0) * 1000)

        return self._map_response(step_number, raw, elapsed_ms)

    def _map_response(self, step_number: int, raw: Any, elapsed_ms: int) -> StepOutcome:
        try:
            response = StepResponse.model_validate(raw)
        except ValidationError as e:
            logger.warning("Step %d: malformed response: %s", step_number, e)
            return StepFailure(
                step_number=step_number, error_kind="transient", message=_MALFORMED_MESSAGE
            )

        if response.is_insufficient_data:
            logger.info("Step %d: remote reported insufficient data", step_number)
            return StepFailure(
                step_number=step_number,
                error_kind="insufficient_data",
                message=response.message or _INSUFFICIENT_DATA_MESSAGE,
            )

        if not response.success:
            error_kind = "fatal" if response.retryable is False else "transient"
            logger.warning(
                "Step %d: remote returned failure (%s): %s",
                step_number, response.error, response.message,
            )
            return StepFailure(
                step_number=step_number,
                error_kind=error_kind,
                message=response.message or response.error or "Generation failed.",
            )

        if step_number == 1 and response.is_full_cache_hit:
            try:
                hit = FullCacheHit(
                    sections=response.sections(),
                    generated_at=response.generated_at,
                    stale=response.stale,
                    **_stale_reason(response),
                )
            except ValidationError as e:
                logger.warning("Step 1: incomplete cache hit: %s", e)
                return StepFailure(
                    step_number=1, error_kind="transient", message=_MALFORMED_MESSAGE
                )
            logger.info(
                "Step 1: full cache hit (stale=%s, reason=%s) in %dms",
                hit.stale, hit.reason_code or hit.stale_reason, elapsed_ms,
            )
            return hit

        section = response.section(step_number)
        if section is None:
            logger.warning(
                "Step %d: response lacks '%s'", step_number, SECTION_KEYS[step_number]
            )
            return StepFailure(
                step_number=step_number, error_kind="transient", message=_MALFORMED_MESSAGE
            )

        logger.info("Step %d completed in %dms", step_number, elapsed_ms)
        return IncrementalResult(
            step_number=step_number,
            section_payload=section,
            data_snapshot_hash=response.data_snapshot_hash if step_number == 1 else None,
        )


def _stale_reason(response: StepResponse) -> dict[str, str | None]:
    """Split the remote's staleness signal into a code and banner text.

    The remote sends a reason code in staleReason ("event_plan_changed",
    "rider_data_changed") alongside eventPrepChanged. Unrecognised values
    are treated as text already meant for display.
    """
    if not response.stale:
        return {"stale_reason": None, "reason_code": None}

    code = response.stale_reason
    text = describe_stale_reason(code)
    if text is None and response.event_prep_changed is not None:
        code = "event_plan_changed" if response.event_prep_changed else "rider_data_changed"
        text = response.stale_reason or describe_stale_reason(code)
    elif text is None:
        code = None
        text = response.stale_reason
    return {"stale_reason": text, "reason_code": code}
