"""Tests for the storage boundary."""

from datetime import datetime, timezone
import sqlite3

import pytest

from servers.tour_worker.models import DedupedRecord, SourceStatus
from servers.tour_worker.storage import InMemoryStore, SqliteStore, build_store


def record(**fields) -> DedupedRecord:
    base = {
        "tour": "T",
        "place": "Hall",
        "date": "2025-10-01",
        "performance": "18:00",
        "artist": "A",
        "checksum": "000000000001",
    }
    base.update(fields)
    return DedupedRecord(**base)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SqliteStore(str(tmp_path / "events.db"))


class TestEventStore:
    """Behaviour shared by every store."""

    @pytest.mark.asyncio
    async def test_unknown_source(self, any_store):
        assert await any_store.get_source_status("https://x.example") is None

    @pytest.mark.asyncio
    async def test_source_status_upserted(self, any_store):
        first = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
        later = datetime(2025, 1, 1, 9, 5, tzinfo=timezone.utc)

        await any_store.record_source_status(
            SourceStatus(source_url="u", last_crawled_at=first, last_status="failed")
        )
        await any_store.record_source_status(
            SourceStatus(source_url="u", last_crawled_at=later, last_status="success")
        )

        status = await any_store.get_source_status("u")
        assert status.last_status == "success"
        assert status.last_crawled_at == later

    @pytest.mark.asyncio
    async def test_upsert_on_natural_key(self, any_store):
        """Same 5-tuple overwrites; a different one inserts."""
        await any_store.upsert_event(record(source_url="old"))
        await any_store.upsert_event(record(source_url="new"))
        await any_store.upsert_event(record(date="2025-10-02", checksum="000000000002"))

        events = await any_store.list_events()

        assert len(events) == 2
        assert {e.source_url for e in events} == {"new", ""}

    @pytest.mark.asyncio
    async def test_existing_checksums(self, any_store):
        await any_store.upsert_event(record())

        found = await any_store.existing_checksums(["000000000001", "ffffffffffff"])

        assert found == {"000000000001"}

    @pytest.mark.asyncio
    async def test_existing_checksums_empty_query(self, any_store):
        assert await any_store.existing_checksums([]) == set()

    @pytest.mark.asyncio
    async def test_empty_fields_round_trip(self, any_store):
        await any_store.upsert_event(record(performance="", tour_start_date=""))
        events = await any_store.list_events()
        assert events[0].performance == ""
        assert events[0].tour_start_date == ""


class TestSqliteStore:
    """SQLite-specific behaviour."""

    @pytest.mark.asyncio
    async def test_range_dates_stored_as_null(self, tmp_path):
        path = tmp_path / "events.db"
        store = SqliteStore(str(path))
        await store.upsert_event(record(tour_start_date=""))

        with sqlite3.connect(path) as conn:
            row = conn.execute("SELECT tour_start_date, performance FROM events").fetchone()

        assert row == (None, "18:00")

    @pytest.mark.asyncio
    async def test_empty_key_columns_still_unique(self, tmp_path):
        """Undated rows collapse on the uniqueness constraint."""
        store = SqliteStore(str(tmp_path / "events.db"))
        await store.upsert_event(record(date="", performance=""))
        await store.upsert_event(record(date="", performance=""))
        assert len(await store.list_events()) == 1

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "nested" / "events.db")
        await SqliteStore(path).upsert_event(record())
        assert len(await SqliteStore(path).list_events()) == 1


class TestBuildStore:
    """Tests for store selection."""

    def test_in_memory_without_path(self):
        assert isinstance(build_store(None), InMemoryStore)

    def test_sqlite_with_path(self, tmp_path):
        assert isinstance(build_store(str(tmp_path / "db.sqlite")), SqliteStore)
