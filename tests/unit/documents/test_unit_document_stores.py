# tests/unit/documents/test_unit_document_stores.py — v1
"""Tests for documents/ — memory and JSON document stores."""

from __future__ import annotations

import json

import pytest

from ridecoach.core.errors import DocumentNotFoundError, DocumentStoreError
from ridecoach.documents.json_store import JsonDocumentStore
from ridecoach.documents.memory_store import MemoryDocumentStore, sort_records


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return JsonDocumentStore(tmp_path / "docs")


class TestDocumentStoreContract:
    @pytest.mark.asyncio
    async def test_create_and_read(self, store):
        doc_id = await store.create("plans", "user1", {"eventType": "clinic"})
        record = await store.read("plans", doc_id)
        assert record["eventType"] == "clinic"
        assert record["id"] == doc_id
        assert record["userId"] == "user1"
        assert record["isDeleted"] is False
        assert record["createdAt"] == record["updatedAt"]

    @pytest.mark.asyncio
    async def test_create_with_explicit_id(self, store):
        doc_id = await store.create("plans", "user1", {"id": "p1"})
        assert doc_id == "p1"

    @pytest.mark.asyncio
    async def test_read_missing(self, store):
        assert await store.read("plans", "nope") is None

    @pytest.mark.asyncio
    async def test_update_merges(self, store):
        doc_id = await store.create("plans", "user1", {"a": 1, "b": 2})
        await store.update("plans", doc_id, {"b": 3, "c": 4})
        record = await store.read("plans", doc_id)
        assert (record["a"], record["b"], record["c"]) == (1, 3, 4)

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.update("plans", "nope", {"a": 1})

    @pytest.mark.asyncio
    async def test_soft_delete_hides_record(self, store):
        doc_id = await store.create("plans", "user1", {})
        await store.soft_delete("plans", doc_id)
        assert await store.read("plans", doc_id) is None
        assert await store.read_all("plans", "user1") == []
        with pytest.raises(DocumentNotFoundError):
            await store.update("plans", doc_id, {"a": 1})

    @pytest.mark.asyncio
    async def test_read_all_scoped_and_ordered(self, store):
        await store.create("plans", "user1", {"id": "a", "eventDate": "2026-05-01"})
        await store.create("plans", "user1", {"id": "b", "eventDate": "2026-09-01"})
        await store.create("plans", "user1", {"id": "c"})
        await store.create("plans", "user2", {"id": "d", "eventDate": "2026-12-01"})

        records = await store.read_all("plans", "user1", order_field="eventDate")
        assert [r["id"] for r in records] == ["b", "a", "c"]

        records = await store.read_all(
            "plans", "user1", order_field="eventDate", order_direction="asc", limit=1
        )
        assert [r["id"] for r in records] == ["a"]


class TestMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_records_are_copies(self):
        store = MemoryDocumentStore()
        fields = {"horses": [{"horseName": "Biscuit"}]}
        doc_id = await store.create("plans", "user1", fields)
        fields["horses"][0]["horseName"] = "changed"
        record = await store.read("plans", doc_id)
        record["horses"].append({})
        again = await store.read("plans", doc_id)
        assert again["horses"] == [{"horseName": "Biscuit"}]


class TestJsonDocumentStore:
    @pytest.mark.asyncio
    async def test_layout(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        await store.create("eventPrepPlans", "user1", {"id": "p1"})
        path = tmp_path / "eventPrepPlans" / "p1.json"
        assert json.loads(path.read_text(encoding="utf-8"))["id"] == "p1"

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        await JsonDocumentStore(tmp_path).create("plans", "user1", {"id": "p1", "x": 1})
        record = await JsonDocumentStore(tmp_path).read("plans", "p1")
        assert record["x"] == 1

    @pytest.mark.asyncio
    async def test_unreadable_file_skipped(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        (tmp_path / "plans").mkdir()
        (tmp_path / "plans" / "bad.json").write_text("{not json", encoding="utf-8")
        assert await store.read("plans", "bad") is None
        assert await store.read_all("plans", "user1") == []

    @pytest.mark.asyncio
    async def test_write_failure_wrapped(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        # A file where the collection folder should be
        (tmp_path / "plans").write_text("", encoding="utf-8")
        with pytest.raises(DocumentStoreError):
            await store.create("plans", "user1", {"id": "p1"})


def test_sort_records_missing_last():
    records = [{"id": "x"}, {"id": "y", "n": 1}, {"id": "z", "n": 2}]
    assert [r["id"] for r in sort_records(records, "n", "asc", None)] == ["y", "z", "x"]
