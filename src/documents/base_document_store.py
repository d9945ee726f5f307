# src/documents/base_document_store.py — v1
"""Abstract Firestore-style document store interface.

Every record carries userId, isDeleted, createdAt and updatedAt.
Soft-deleted records are invisible to read() and read_all().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

OrderDirection = Literal["asc", "desc"]


class BaseDocumentStore(ABC):
    """Unified interface for per-collection, user-scoped document storage."""

    @abstractmethod
    async def create(
        self, collection: str, user_id: str, fields: dict[str, Any]
    ) -> str:
        """Create a record and return its generated id."""

    @abstractmethod
    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the record (with its 'id'), or None if missing/deleted."""

    @abstractmethod
    async def read_all(
        self,
        collection: str,
        user_id: str,
        order_field: str = "createdAt",
        order_direction: OrderDirection = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List a user's non-deleted records in the given order."""

    @abstractmethod
    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any]
    ) -> None:
        """Merge fields into an existing record.

        Raises:
            DocumentNotFoundError: If the record is missing or deleted.
        """

    @abstractmethod
    async def soft_delete(self, collection: str, doc_id: str) -> None:
        """Flag a record as deleted without removing it."""
