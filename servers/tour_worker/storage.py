"""
Storage boundary for events and per-source crawl status.

- EventStore: async protocol the orchestrator depends on
- InMemoryStore: process-local store for tests and ephemeral runs
- SqliteStore: single-file persistent store

Events are unique on (artist, tour, place, date, performance); a second
upsert for the same tuple overwrites the stored row.
"""

import asyncio
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol

import structlog

from .models import DedupedRecord, SourceStatus

logger = structlog.get_logger()

RANGE_FIELDS = ("tour_start_date", "tour_end_date", "place_start_date", "place_end_date")

EVENT_COLUMNS = (
    "tour",
    "tour_start_date",
    "tour_end_date",
    "place",
    "place_start_date",
    "place_end_date",
    "date",
    "performance",
    "artist",
    "source_url",
    "checksum",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tour TEXT NOT NULL DEFAULT '',
    tour_start_date TEXT,
    tour_end_date TEXT,
    place TEXT NOT NULL DEFAULT '',
    place_start_date TEXT,
    place_end_date TEXT,
    date TEXT NOT NULL DEFAULT '',
    performance TEXT NOT NULL DEFAULT '',
    artist TEXT NOT NULL DEFAULT '',
    source_url TEXT NOT NULL DEFAULT '',
    checksum TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (artist, tour, place, date, performance)
);
CREATE INDEX IF NOT EXISTS idx_events_checksum ON events(checksum);

CREATE TABLE IF NOT EXISTS url_sources (
    source_url TEXT PRIMARY KEY,
    last_crawled_at TIMESTAMP,
    last_status TEXT
);
"""


class EventStore(Protocol):
    """Upsert-capable store the orchestrator persists into."""

    async def get_source_status(self, source_url: str) -> Optional[SourceStatus]: ...

    async def record_source_status(self, status: SourceStatus) -> None: ...

    async def existing_checksums(self, checksums: Iterable[str]) -> set[str]: ...

    async def upsert_event(self, record: DedupedRecord) -> None: ...

    async def list_events(self) -> list[DedupedRecord]: ...


class InMemoryStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self):
        self.events: dict[tuple[str, ...], DedupedRecord] = {}
        self.sources: dict[str, SourceStatus] = {}

    async def get_source_status(self, source_url: str) -> Optional[SourceStatus]:
        return self.sources.get(source_url)

    async def record_source_status(self, status: SourceStatus) -> None:
        self.sources[status.source_url] = status

    async def existing_checksums(self, checksums: Iterable[str]) -> set[str]:
        wanted = set(checksums)
        return {r.checksum for r in self.events.values() if r.checksum in wanted}

    async def upsert_event(self, record: DedupedRecord) -> None:
        self.events[record.natural_key] = record

    async def list_events(self) -> list[DedupedRecord]:
        return list(self.events.values())


class SqliteStore:
    """
    SQLite-backed store.

    Each operation opens its own connection in a worker thread so the
    event loop never blocks on disk I/O.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_database(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        logger.debug("sqlite_store_ready", path=self.db_path)

    # Blocking implementations, run via asyncio.to_thread

    def _get_source_status(self, source_url: str) -> Optional[SourceStatus]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT source_url, last_crawled_at, last_status FROM url_sources "
                "WHERE source_url = ?",
                (source_url,),
            ).fetchone()

        if row is None:
            return None

        crawled = row["last_crawled_at"]
        return SourceStatus(
            source_url=row["source_url"],
            last_crawled_at=datetime.fromisoformat(crawled) if crawled else None,
            last_status=row["last_status"],
        )

    def _record_source_status(self, status: SourceStatus) -> None:
        crawled = status.last_crawled_at.isoformat() if status.last_crawled_at else None
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO url_sources (source_url, last_crawled_at, last_status) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(source_url) DO UPDATE SET "
                "last_crawled_at = excluded.last_crawled_at, "
                "last_status = excluded.last_status",
                (status.source_url, crawled, status.last_status),
            )

    def _existing_checksums(self, checksums: list[str]) -> set[str]:
        if not checksums:
            return set()
        placeholders = ", ".join("?" for _ in checksums)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT checksum FROM events WHERE checksum IN ({placeholders})",
                checksums,
            ).fetchall()
        return {row["checksum"] for row in rows}

    def _upsert_event(self, record: DedupedRecord) -> None:
        row = record.model_dump(include=set(EVENT_COLUMNS))
        for field in RANGE_FIELDS:
            row[field] = row[field] or None

        columns = ", ".join(EVENT_COLUMNS)
        placeholders = ", ".join(f":{c}" for c in EVENT_COLUMNS)
        updates = ", ".join(
            f"{c} = excluded.{c}"
            for c in EVENT_COLUMNS
            if c not in ("artist", "tour", "place", "date", "performance")
        )

        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO events ({columns}) VALUES ({placeholders}) "
                "ON CONFLICT(artist, tour, place, date, performance) DO UPDATE SET "
                f"{updates}, updated_at = CURRENT_TIMESTAMP",
                row,
            )

    def _list_events(self) -> list[DedupedRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {', '.join(EVENT_COLUMNS)} FROM events ORDER BY date, id"
            ).fetchall()
        return [
            DedupedRecord(**{c: row[c] or "" for c in EVENT_COLUMNS}) for row in rows
        ]

    # EventStore

    async def get_source_status(self, source_url: str) -> Optional[SourceStatus]:
        return await asyncio.to_thread(self._get_source_status, source_url)

    async def record_source_status(self, status: SourceStatus) -> None:
        await asyncio.to_thread(self._record_source_status, status)

    async def existing_checksums(self, checksums: Iterable[str]) -> set[str]:
        return await asyncio.to_thread(self._existing_checksums, list(set(checksums)))

    async def upsert_event(self, record: DedupedRecord) -> None:
        await asyncio.to_thread(self._upsert_event, record)

    async def list_events(self) -> list[DedupedRecord]:
        return await asyncio.to_thread(self._list_events)


def build_store(database_path: Optional[str]) -> EventStore:
    """SqliteStore when a path is configured, otherwise InMemoryStore."""
    if database_path:
        return SqliteStore(database_path)
    logger.info("using_in_memory_store")
    return InMemoryStore()
