"""
Pydantic models for crawl data structures.

These models define the core data types used throughout the worker:
- Candidate: Unverified event guess from one extraction strategy
- NormalizedRecord: Candidate after date/time normalization and range filling
- DedupedRecord: NormalizedRecord with its storage checksum
- SourceStatus: Last crawl outcome for a source URL
- RunResult / ExtractResult: Outcomes of the two orchestrator modes
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator


class Candidate(BaseModel):
    """Loosely structured event guess; every field is optional free text."""

    tour: Optional[str] = None
    place: Optional[str] = None
    date: Optional[str] = None
    performance: Optional[str] = None
    artist: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        # AI and feed payloads sometimes carry numbers or nested objects
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return None


class NormalizedRecord(BaseModel):
    """Event record ready for deduplication; text fields are never None."""

    tour: str = ""
    tour_start_date: str = ""
    tour_end_date: str = ""
    place: str = ""
    place_start_date: str = ""
    place_end_date: str = ""
    date: str = ""  # YYYY-MM-DD or ""
    performance: str = ""  # HH:MM or ""
    artist: str = ""
    source_url: str = ""


class DedupedRecord(NormalizedRecord):
    """Normalized record carrying the short checksum of its event key."""

    checksum: str

    @property
    def key(self) -> str:
        """Canonical identity of the event (not persisted)."""
        from .dedup import event_key

        return event_key(self)

    @property
    def natural_key(self) -> tuple[str, str, str, str, str]:
        """Storage uniqueness constraint (artist, tour, place, date, performance)."""
        return (self.artist, self.tour, self.place, self.date, self.performance)


class DedupeResult(BaseModel):
    """Result of in-batch deduplication."""

    records: list[DedupedRecord]
    original_count: int
    duplicates_removed: int

    @computed_field
    @property
    def dedup_rate(self) -> float:
        """Percentage of records that were duplicates."""
        if self.original_count == 0:
            return 0.0
        return self.duplicates_removed / self.original_count * 100


class SourceStatus(BaseModel):
    """Last crawl outcome for one source URL."""

    source_url: str
    last_crawled_at: Optional[datetime] = None
    last_status: Optional[str] = None  # success, failed


class RenderedPage(BaseModel):
    """Fully rendered HTML and the URL it ended up at after redirects."""

    html: str
    final_url: str


class ChainResult(BaseModel):
    """Output of the extractor chain for one document."""

    candidates: list[Candidate] = Field(default_factory=list)
    strategy: Optional[str] = None  # name of the strategy that produced results
    ai_tried: bool = False

    @computed_field
    @property
    def used_ai(self) -> bool:
        """Whether the AI strategy was the one that produced the results."""
        return self.strategy == "ai"


class PersistStats(BaseModel):
    """Counters from writing one batch to storage."""

    written: int = 0
    skipped: int = 0  # checksum already stored
    failed: int = 0  # individual upsert failures


class RunState(str, Enum):
    """Orchestrator states for one crawl run."""

    IDLE = "idle"
    COOLDOWN_CHECK = "cooldown_check"
    RATE_LIMIT_CHECK = "rate_limit_check"
    ROBOTS_CHECK = "robots_check"
    RENDERING = "rendering"
    EXTRACTING = "extracting"
    NORMALIZING = "normalizing"
    DEDUPLICATING = "deduplicating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class RunResult(BaseModel):
    """Result of a full crawl run against one source."""

    source_url: str
    final_url: str
    extracted: int
    unique: int
    stats: PersistStats
    strategy: Optional[str] = None
    duration_ms: Optional[int] = None

    @computed_field
    @property
    def count(self) -> int:
        """Newly written row count."""
        return self.stats.written


class ExtractResult(BaseModel):
    """Result of an extract-only preview."""

    records: list[NormalizedRecord] = Field(default_factory=list)
    used_ai: bool = False
    ai_tried: bool = False
    strategy: Optional[str] = None
