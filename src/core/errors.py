# src/core/errors.py — v1
"""Exception hierarchy shared across modules.

Expected generation failures (insufficient data, transient, fatal) are
returned as tagged StepFailure values, not raised. The exceptions below
cover caller errors, remote transport failures and persistence failures.
"""

from __future__ import annotations


class RidecoachError(Exception):
    """Base class for all ridecoach errors."""


class RemoteCallError(RidecoachError):
    """The remote generation capability failed to produce a response.

    Args:
        message: Human-readable description.
        status: HTTP status code, when known.
        code: Remote error code (e.g. "RESOURCE_EXHAUSTED"), when known.
        retryable: Explicit retry signal from the remote side. None = unknown.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.retryable = retryable


class MissingPriorResultsError(RidecoachError):
    """A step was invoked without the section payloads of earlier steps."""

    def __init__(self, step_number: int, missing: list[int]) -> None:
        self.step_number = step_number
        self.missing = missing
        super().__init__(
            f"Step {step_number} requires prior results for steps {missing}"
        )


class DocumentStoreError(RidecoachError):
    """Document store read/write failure."""


class DocumentNotFoundError(DocumentStoreError):
    """The requested document does not exist (or was soft-deleted)."""


class ArtifactWriteError(RidecoachError):
    """Persisting a generated artifact failed."""


class ArtifactConflictError(ArtifactWriteError):
    """Compare-and-swap on the artifact version failed."""

    def __init__(
        self, source_plan_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.source_plan_id = source_plan_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Artifact for '{source_plan_id}' changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class GenerationStateError(RidecoachError):
    """An orchestrator operation is not valid in the current run state."""


class GenerationInProgressError(GenerationStateError):
    """A run is already in progress on this orchestrator."""
