"""Tests for Pydantic models."""

from datetime import datetime, timezone

from servers.tour_worker.models import (
    Candidate,
    ChainResult,
    DedupedRecord,
    ExtractResult,
    NormalizedRecord,
    PersistStats,
    RunResult,
    RunState,
    SourceStatus,
)


class TestCandidate:
    """Tests for Candidate model."""

    def test_all_fields_optional(self):
        candidate = Candidate()
        assert candidate.tour is None
        assert candidate.artist is None

    def test_numbers_coerced_to_text(self):
        """Model answers sometimes carry numbers."""
        candidate = Candidate(date=20251014, performance=18.5)
        assert candidate.date == "20251014"
        assert candidate.performance == "18.5"

    def test_nested_values_dropped(self):
        """Objects and lists are not free text."""
        candidate = Candidate(place={"name": "Hall"}, artist=["A", "B"])
        assert candidate.place is None
        assert candidate.artist is None

    def test_extra_keys_ignored(self):
        candidate = Candidate.model_validate({"tour": "T", "url": "https://x"})
        assert candidate.tour == "T"


class TestNormalizedRecord:
    """Tests for NormalizedRecord model."""

    def test_defaults_are_empty_strings(self):
        record = NormalizedRecord()
        dumped = record.model_dump()
        assert set(dumped) == {
            "tour", "tour_start_date", "tour_end_date",
            "place", "place_start_date", "place_end_date",
            "date", "performance", "artist", "source_url",
        }
        assert all(value == "" for value in dumped.values())


class TestDedupedRecord:
    """Tests for DedupedRecord model."""

    def test_natural_key(self):
        record = DedupedRecord(
            artist="A", tour="T", place="P", date="2025-01-01",
            performance="18:00", checksum="abcdef012345",
        )
        assert record.natural_key == ("A", "T", "P", "2025-01-01", "18:00")
        assert record.key == "a|t|p|2025-01-01|18:00"


class TestChainResult:
    """Tests for ChainResult model."""

    def test_used_ai_only_when_ai_won(self):
        assert ChainResult(strategy="ai", ai_tried=True).used_ai is True
        assert ChainResult(strategy="html", ai_tried=False).used_ai is False
        assert ChainResult(strategy=None, ai_tried=True).used_ai is False

    def test_serialization_includes_used_ai(self):
        data = ChainResult(strategy="ai", ai_tried=True).model_dump()
        assert data["used_ai"] is True


class TestRunResult:
    """Tests for RunResult model."""

    def test_count_is_written_rows(self):
        result = RunResult(
            source_url="https://example.com",
            final_url="https://example.com/",
            extracted=5,
            unique=4,
            stats=PersistStats(written=3, skipped=1),
        )
        assert result.count == 3


class TestMisc:
    """Tests for the remaining models."""

    def test_source_status(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        status = SourceStatus(source_url="u", last_crawled_at=now, last_status="success")
        assert status.last_crawled_at == now

    def test_extract_result_defaults(self):
        result = ExtractResult()
        assert result.records == []
        assert result.used_ai is False
        assert result.ai_tried is False

    def test_run_state_values(self):
        assert RunState.COOLDOWN_CHECK.value == "cooldown_check"
        assert RunState("failed") is RunState.FAILED
