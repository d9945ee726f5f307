# src/remote/base_remote.py — v1
"""Abstract remote generation capability.

One invocation produces one step's section (or, for step 1, possibly a full
cache hit). Implementations raise RemoteCallError on transport or remote
failures; an `insufficient_data` answer is a normal response, not an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseRemoteGeneration(ABC):
    """Unified interface for remote section generators."""

    @abstractmethod
    async def invoke(self, step_number: int, payload: dict[str, Any]) -> dict[str, Any]:
        """Run one generation step remotely.

        Args:
            step_number: 1-4.
            payload: Wire payload (eventPrepPlanId, priorResults, forceRefresh).

        Returns:
            Raw response mapping, parsed by StepResponse.

        Raises:
            RemoteCallError: On transport failure or a remote-side error.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short identifier used in logs."""
