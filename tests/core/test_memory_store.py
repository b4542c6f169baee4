"""InMemoryRecordStore 测试 -- 过滤、排序、字段级合并更新"""

import pytest

from capicar.core.store import (
    InMemoryRecordStore,
    RecordNotFoundError,
    SortSpec,
    StoreRecord,
)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        {
            "Audit_Log": [
                StoreRecord(id="recA", fields={"task_id": "t1", "timestamp": "2024-05-02", "staff_id": ["recS1"]}),
                StoreRecord(id="recB", fields={"task_id": "t1", "timestamp": "2024-05-01"}),
                StoreRecord(id="recC", fields={"task_id": "t2", "timestamp": "2024-05-03"}),
                StoreRecord(id="recD", fields={"task_id": "t1"}),
            ]
        }
    )


class TestListRecords:
    async def test_filter_by_field(self, store: InMemoryRecordStore):
        records = await store.list_records("Audit_Log", filters={"task_id": "t1"})
        assert {r.id for r in records} == {"recA", "recB", "recD"}

    async def test_filter_matches_linked_list(self, store: InMemoryRecordStore):
        records = await store.list_records("Audit_Log", filters={"staff_id": "recS1"})
        assert [r.id for r in records] == ["recA"]

    async def test_sort_places_missing_last(self, store: InMemoryRecordStore):
        records = await store.list_records(
            "Audit_Log",
            filters={"task_id": "t1"},
            sort=[SortSpec(field="timestamp", direction="asc")],
        )
        assert [r.id for r in records] == ["recB", "recA", "recD"]

    async def test_max_records(self, store: InMemoryRecordStore):
        records = await store.list_records("Audit_Log", max_records=2)
        assert len(records) == 2

    async def test_unknown_table_is_empty(self, store: InMemoryRecordStore):
        assert await store.list_records("Nope") == []


class TestWrites:
    async def test_create_assigns_record_id(self, store: InMemoryRecordStore):
        record = await store.create_record("Staff", {"name": "Carol", "note": ""})
        assert record.id.startswith("rec")
        assert record.fields == {"name": "Carol"}
        assert await store.get_record("Staff", record.id) == record

    async def test_update_merges_and_clears(self, store: InMemoryRecordStore):
        record = await store.update_record(
            "Audit_Log", "recA", {"details": "x", "staff_id": ""}
        )
        assert record.fields == {"task_id": "t1", "timestamp": "2024-05-02", "details": "x"}

    async def test_update_missing_record(self, store: InMemoryRecordStore):
        with pytest.raises(RecordNotFoundError):
            await store.update_record("Audit_Log", "recZZZ", {"details": "x"})

    async def test_returned_records_are_copies(self, store: InMemoryRecordStore):
        record = await store.get_record("Audit_Log", "recA")
        record.fields["task_id"] = "mutated"
        again = await store.get_record("Audit_Log", "recA")
        assert again.fields["task_id"] == "t1"

    async def test_delete(self, store: InMemoryRecordStore):
        assert await store.delete_record("Audit_Log", "recC") is True
        assert await store.delete_record("Audit_Log", "recC") is False
        assert await store.get_record("Audit_Log", "recC") is None
