# src/store/base_artifact_store.py — v1
"""Abstract artifact store interface.

One GeneratedArtifact per source plan. Only complete four-section
artifacts can be constructed, so a store never holds a partial one.
Writers are not coordinated here: without expected_version the last
writer wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ridecoach.core.models import GeneratedArtifact


class BaseArtifactStore(ABC):
    """Unified interface for artifact storage backends."""

    @abstractmethod
    async def get_artifact(self, source_plan_id: str) -> GeneratedArtifact | None:
        """Retrieve the artifact for a source plan, or None."""

    @abstractmethod
    async def save_artifact(
        self,
        source_plan_id: str,
        artifact: GeneratedArtifact,
        expected_version: int | None = None,
    ) -> GeneratedArtifact:
        """Store an artifact, replacing any previous one.

        Args:
            source_plan_id: Owning plan.
            artifact: Complete artifact to store.
            expected_version: When set, the write only succeeds if the stored
                version still equals it (0 = nothing stored yet).

        Returns:
            The stored artifact, with its version incremented.

        Raises:
            ArtifactConflictError: If expected_version no longer matches.
            ArtifactWriteError: If the backend write fails.
        """

    async def get_version(self, source_plan_id: str) -> int:
        """Current stored version (0 when absent)."""
        current = await self.get_artifact(source_plan_id)
        return current.version if current is not None else 0
