# src/logging/context.py — v2
"""Contextual logging support — attach source_plan_id, run_id, step to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per generation run.
_source_plan_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source_plan_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    source_plan_id: str | None = None
    run_id: str | None = None
    step: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        source_plan_id=_source_plan_id.get(),
        run_id=_run_id.get(),
        step=_step.get(),
    )


def set_run_context(source_plan_id: str, run_id: str) -> None:
    """Set run-level context (called once per generation run)."""
    _source_plan_id.set(source_plan_id)
    _run_id.set(run_id)
    _step.set(None)


def set_step_context(step: int | None) -> None:
    """Set step-level context (called per step execution)."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _source_plan_id.set(None)
    _run_id.set(None)
    _step.set(None)
