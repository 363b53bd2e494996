"""Tests for the InMemoryDBClient test double."""

import pytest

from src.core.db_client import DatabaseError, RecordNotFoundError


@pytest.mark.unit
class TestInMemoryDBClient:
    """The in-memory store must behave like the SQLite client for the services."""

    async def test_create_record_generates_unique_ids(self, in_memory_db):
        first = await in_memory_db.create_record("maintenance_tasks", {"title": "A"})
        second = await in_memory_db.create_record("maintenance_tasks", {"title": "B"})

        assert first["id"] != second["id"]
        assert "created" in first
        assert "updated" in first

    async def test_create_record_keeps_supplied_id(self, in_memory_db):
        record = await in_memory_db.create_record("maintenance_completions", {"id": "key-1"})

        assert record["id"] == "key-1"

    async def test_duplicate_id_is_rejected(self, in_memory_db):
        await in_memory_db.create_record("maintenance_completions", {"id": "key-1"})

        with pytest.raises(DatabaseError, match="duplicate id"):
            await in_memory_db.create_record("maintenance_completions", {"id": "key-1"})

    async def test_create_record_invalid_data(self, in_memory_db):
        with pytest.raises(DatabaseError, match="Data must be a dictionary"):
            await in_memory_db.create_record("maintenance_tasks", "invalid")

    async def test_get_update_delete(self, in_memory_db):
        created = await in_memory_db.create_record("workers", {"name": "Pat"})

        updated = await in_memory_db.update_record("workers", created["id"], {"name": "Sam"})
        assert updated["name"] == "Sam"
        assert updated["updated"] != created["updated"]

        await in_memory_db.delete_record("workers", created["id"])
        with pytest.raises(RecordNotFoundError, match="Record not found"):
            await in_memory_db.get_record("workers", created["id"])

    async def test_filters_and_booleans(self, in_memory_db):
        await in_memory_db.create_record("maintenance_tasks", {"property_id": "p1", "is_active": True})
        await in_memory_db.create_record("maintenance_tasks", {"property_id": "p1", "is_active": False})
        await in_memory_db.create_record("maintenance_tasks", {"property_id": "p2", "is_active": True})

        records = await in_memory_db.list_records(
            "maintenance_tasks", filter_query='property_id = "p1" && is_active = true'
        )

        assert len(records) == 1

    async def test_delete_records_by_filter(self, in_memory_db):
        await in_memory_db.create_record("maintenance_completions", {"task_id": "t1"})
        await in_memory_db.create_record("maintenance_completions", {"task_id": "t1"})
        await in_memory_db.create_record("maintenance_completions", {"task_id": "t2"})

        deleted = await in_memory_db.delete_records("maintenance_completions", 'task_id = "t1"')

        assert deleted == 2
        assert [r["task_id"] for r in in_memory_db.all_records("maintenance_completions")] == ["t2"]

    async def test_sort_descending(self, in_memory_db):
        for day in ("2024-01-01", "2024-03-01", "2024-02-01"):
            await in_memory_db.create_record("maintenance_completions", {"completed_date": day})

        records = await in_memory_db.list_records("maintenance_completions", sort="-completed_date")

        assert [r["completed_date"] for r in records] == ["2024-03-01", "2024-02-01", "2024-01-01"]

    async def test_invalid_filter(self, in_memory_db):
        await in_memory_db.create_record("workers", {"name": "Pat"})

        with pytest.raises(DatabaseError, match="Invalid filter syntax"):
            await in_memory_db.list_records("workers", filter_query="name")

    async def test_rejects_what_the_sqlite_client_rejects(self, in_memory_db):
        await in_memory_db.create_record("maintenance_tasks", {"property_id": "p1"})

        with pytest.raises(DatabaseError, match="Invalid filter syntax"):
            await in_memory_db.list_records("maintenance_tasks", filter_query="property_id = p1")

    async def test_or_groups_and_range_operators(self, in_memory_db):
        await in_memory_db.create_record("maintenance_tasks", {"id": "a", "reminder_days_before": 1, "asset_id": None})
        await in_memory_db.create_record("maintenance_tasks", {"id": "b", "reminder_days_before": 7, "asset_id": "x"})
        await in_memory_db.create_record("maintenance_tasks", {"id": "c", "reminder_days_before": 9, "asset_id": None})

        records = await in_memory_db.list_records(
            "maintenance_tasks", filter_query='(reminder_days_before <= 2 || asset_id = "x")'
        )

        assert sorted(r["id"] for r in records) == ["a", "b"]

    async def test_null_never_matches(self, in_memory_db):
        await in_memory_db.create_record("maintenance_tasks", {"asset_id": None})

        assert await in_memory_db.list_records("maintenance_tasks", filter_query='asset_id != "x"') == []

    async def test_quoted_digits_match_as_text(self, in_memory_db):
        await in_memory_db.create_record("workers", {"id": "0123", "name": "Pat"})
        await in_memory_db.create_record("workers", {"id": "123", "name": "Sam"})

        records = await in_memory_db.list_records("workers", filter_query='id = "0123"')

        assert [r["name"] for r in records] == ["Pat"]

    async def test_contains_is_case_insensitive(self, in_memory_db):
        await in_memory_db.create_record("workers", {"name": "Pat Smith"})

        assert len(await in_memory_db.list_records("workers", filter_query="name ~ 'smith'")) == 1
