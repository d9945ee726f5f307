# src/documents/json_store.py — v1
"""JSON file-based document store.

Layout: <root>/<collection>/<doc_id>.json, one record per file.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ridecoach.core.errors import DocumentNotFoundError, DocumentStoreError
from ridecoach.documents.base_document_store import BaseDocumentStore, OrderDirection
from ridecoach.documents.memory_store import sort_records

logger = logging.getLogger(__name__)


class JsonDocumentStore(BaseDocumentStore):
    """File-backed document store using JSON files."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def create(
        self, collection: str, user_id: str, fields: dict[str, Any]
    ) -> str:
        doc_id = fields.get("id") or uuid.uuid4().hex[:20]
        now = datetime.now(timezone.utc).isoformat()
        record = dict(fields)
        record.update(
            id=doc_id, userId=user_id, isDeleted=False, createdAt=now, updatedAt=now
        )
        self._write(collection, doc_id, record)
        return doc_id

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        record = self._load(self._doc_path(collection, doc_id))
        if record is None or record.get("isDeleted"):
            return None
        return record

    async def read_all(
        self,
        collection: str,
        user_id: str,
        order_field: str = "createdAt",
        order_direction: OrderDirection = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        folder = self._root / _safe(collection)
        records: list[dict[str, Any]] = []
        if folder.is_dir():
            for path in folder.glob("*.json"):
                record = self._load(path)
                if record and record.get("userId") == user_id and not record.get("isDeleted"):
                    records.append(record)
        return sort_records(records, order_field, order_direction, limit)

    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any]
    ) -> None:
        record = await self.read(collection, doc_id)
        if record is None:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        record.update(fields)
        record["updatedAt"] = datetime.now(timezone.utc).isoformat()
        self._write(collection, doc_id, record)

    async def soft_delete(self, collection: str, doc_id: str) -> None:
        await self.update(collection, doc_id, {"isDeleted": True})

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        return self._root / _safe(collection) / f"{_safe(doc_id)}.json"

    def _load(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Skipping unreadable document %s: %s", path, e)
            return None

    def _write(self, collection: str, doc_id: str, record: dict[str, Any]) -> None:
        path = self._doc_path(collection, doc_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(record, indent=2, default=str), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise DocumentStoreError(f"Failed to write {collection}/{doc_id}: {e}") from e


def _safe(name: str) -> str:
    return name.replace("/", "_").replace("\\", "_")
