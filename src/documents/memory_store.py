# src/documents/memory_store.py — v1
"""In-process document store, used by tests and embedded callers."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any

from ridecoach.core.errors import DocumentNotFoundError
from ridecoach.documents.base_document_store import BaseDocumentStore, OrderDirection


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sort_records(
    records: list[dict[str, Any]],
    order_field: str,
    order_direction: OrderDirection,
    limit: int | None,
) -> list[dict[str, Any]]:
    """Order records by a field (missing values last) and apply the limit."""
    present = [r for r in records if r.get(order_field) is not None]
    absent = [r for r in records if r.get(order_field) is None]
    present.sort(key=lambda r: r[order_field], reverse=order_direction == "desc")
    ordered = present + absent
    return ordered[:limit] if limit is not None else ordered


class MemoryDocumentStore(BaseDocumentStore):
    """Dictionary-backed store. Records are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def create(
        self, collection: str, user_id: str, fields: dict[str, Any]
    ) -> str:
        doc_id = fields.get("id") or uuid.uuid4().hex[:20]
        now = _now_iso()
        record = copy.deepcopy(fields)
        record.update(
            id=doc_id, userId=user_id, isDeleted=False, createdAt=now, updatedAt=now
        )
        self._collections.setdefault(collection, {})[doc_id] = record
        return doc_id

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None or record.get("isDeleted"):
            return None
        return copy.deepcopy(record)

    async def read_all(
        self,
        collection: str,
        user_id: str,
        order_field: str = "createdAt",
        order_direction: OrderDirection = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        records = [
            copy.deepcopy(r)
            for r in self._collections.get(collection, {}).values()
            if r.get("userId") == user_id and not r.get("isDeleted")
        ]
        return sort_records(records, order_field, order_direction, limit)

    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any]
    ) -> None:
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None or record.get("isDeleted"):
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        record.update(copy.deepcopy(fields))
        record["updatedAt"] = _now_iso()

    async def soft_delete(self, collection: str, doc_id: str) -> None:
        await self.update(collection, doc_id, {"isDeleted": True})
