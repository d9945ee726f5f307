# src/remote/retry.py — v1
"""Remote error classification and per-step retry with exponential backoff.

Classification maps any remote failure onto the generation error taxonomy:
  transient: rate limits, 5xx, network, timeouts, truncated/malformed output
  fatal:     bad request, auth/configuration problems, explicit non-retryable
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from ridecoach.core.errors import RemoteCallError

logger = logging.getLogger(__name__)

RemoteErrorKind = Literal["transient", "fatal"]

# Exceptions that count as remote failures. Anything else is a programming
# error and propagates unchanged.
REMOTE_ERRORS: tuple[type[BaseException], ...] = (
    RemoteCallError,
    TimeoutError,
    ConnectionError,
)

_FATAL_CODES = {
    "INVALID_ARGUMENT",
    "UNAUTHENTICATED",
    "PERMISSION_DENIED",
    "NOT_FOUND",
    "FAILED_PRECONDITION",
}

_USER_MESSAGES: dict[str, str] = {
    "rate_limit": "Our AI service is temporarily busy. Please try again in a moment.",
    "unavailable": "Our AI service is temporarily unavailable. Please try again shortly.",
    "network": "A network issue occurred. Please check your connection and try again.",
    "data_issue": "We received an unusual response from our AI. A retry usually fixes this.",
    "configuration": "There is an AI service configuration issue. Please contact support if this persists.",
    "bad_request": "Something went wrong with this request. Please start over, or contact support if the problem persists.",
    "unknown": "An unexpected error occurred. Please try again.",
}


class StepRetryExhausted(Exception):
    """A step's remote call failed and will not be retried further."""

    def __init__(
        self,
        step_number: int,
        error_kind: RemoteErrorKind,
        attempts: int,
        last_error: BaseException,
    ) -> None:
        self.step_number = step_number
        self.error_kind = error_kind
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Step {step_number} failed after {attempts} attempt(s) "
            f"({error_kind}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Automatic retry policy for transient step failures."""

    max_retries: int = 0
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = True


def _category(error: BaseException) -> str:
    status = getattr(error, "status", None)
    code = (getattr(error, "code", None) or "").upper()
    msg = str(error).lower()

    if status == 429 or "rate_limit" in msg or "rate limit" in msg:
        return "rate_limit"
    if status is not None and (status == 529 or 500 <= status < 600):
        return "unavailable"
    if (
        isinstance(error, (TimeoutError, ConnectionError))
        or "timeout" in msg
        or "timed out" in msg
        or "network" in msg
    ):
        return "network"
    if (
        code == "RESOURCE_EXHAUSTED"
        or "truncated" in msg
        or "json" in msg
        or "malformed" in msg
    ):
        return "data_issue"
    if status in (401, 403) or "api key" in msg or code in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
        return "configuration"
    if status == 400 or code in _FATAL_CODES:
        return "bad_request"
    return "unknown"


def classify_error(error: BaseException) -> RemoteErrorKind:
    """Classify a remote failure as transient or fatal."""
    if isinstance(error, RemoteCallError) and error.retryable is not None:
        return "transient" if error.retryable else "fatal"
    if _category(error) in ("configuration", "bad_request"):
        return "fatal"
    return "transient"


def user_message(error: BaseException) -> str:
    """User-facing description of a remote failure."""
    return _USER_MESSAGES[_category(error)]


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    step_number: int,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> Any:
    """Execute a remote call, retrying transient failures.

    Raises:
        StepRetryExhausted: On a fatal failure, or once retries run out.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except REMOTE_ERRORS as e:
            attempts += 1
            error_kind = classify_error(e)
            if error_kind == "fatal" or attempts > config.max_retries:
                raise StepRetryExhausted(step_number, error_kind, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "Step %d: transient error (attempt %d/%d), retrying in %.1fs: %s",
                step_number, attempts, config.max_retries, delay, e,
            )
            await asyncio.sleep(delay)
