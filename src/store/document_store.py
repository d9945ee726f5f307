# src/store/document_store.py — v1
"""Artifact store writing into the owning plan document (ARTIFACT_BACKEND=document).

The artifact lives in a single field (default `generatedPlan`) of the
event-prep plan record, so deleting the plan deletes the artifact with it.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ridecoach.core.errors import (
    ArtifactConflictError,
    ArtifactWriteError,
    DocumentStoreError,
)
from ridecoach.core.models import GeneratedArtifact
from ridecoach.documents.base_document_store import BaseDocumentStore
from ridecoach.store.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)


class DocumentArtifactStore(BaseArtifactStore):
    """Persist artifacts as a field of the plan document.

    The version check and the write are two separate document operations;
    the compare-and-swap is only as strong as the document store's own
    update semantics.
    """

    def __init__(
        self,
        document_store: BaseDocumentStore,
        collection: str = "eventPrepPlans",
        field: str = "generatedPlan",
    ) -> None:
        self._documents = document_store
        self._collection = collection
        self._field = field

    async def get_artifact(self, source_plan_id: str) -> GeneratedArtifact | None:
        record = await self._documents.read(self._collection, source_plan_id)
        if record is None:
            return None
        data = record.get(self._field)
        if not data:
            return None
        try:
            return GeneratedArtifact.model_validate(data)
        except ValidationError as e:
            # Legacy metadata-only field or partial data: treat as absent
            logger.warning(
                "Ignoring unreadable artifact on %s/%s: %s",
                self._collection, source_plan_id, e,
            )
            return None

    async def save_artifact(
        self,
        source_plan_id: str,
        artifact: GeneratedArtifact,
        expected_version: int | None = None,
    ) -> GeneratedArtifact:
        current_version = await self.get_version(source_plan_id)
        if expected_version is not None and current_version != expected_version:
            raise ArtifactConflictError(source_plan_id, expected_version, current_version)

        stored = artifact.model_copy(update={"version": current_version + 1})
        try:
            await self._documents.update(
                self._collection,
                source_plan_id,
                {self._field: stored.model_dump(mode="json")},
            )
        except DocumentStoreError as e:
            raise ArtifactWriteError(
                f"Failed to save artifact for '{source_plan_id}': {e}"
            ) from e

        logger.info(
            "Saved artifact for %s (version %d)", source_plan_id, stored.version
        )
        return stored
