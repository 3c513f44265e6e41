"""
Checksum deduplication for normalized event records.

An event's identity is its lower-cased key
    artist|tour|place|date|performance
and its storage token is the first 12 hex characters of the SHA-1 of
that key. Within a batch the first record per key wins: earlier
strategies/lines are treated as higher confidence.
"""

from collections.abc import Iterable, Mapping
import hashlib
from typing import Any

import structlog

from .models import DedupeResult, DedupedRecord, NormalizedRecord

logger = structlog.get_logger()


KEY_FIELDS = ("artist", "tour", "place", "date", "performance")

CHECKSUM_LENGTH = 12


def _field(record: Any, name: str) -> str:
    if isinstance(record, Mapping):
        value = record.get(name)
    else:
        value = getattr(record, name, None)
    return value or ""


def event_key(record: Any) -> str:
    """
    Build the canonical event key.

    Args:
        record: Record, candidate or mapping; missing fields count as ""

    Returns:
        Lower-cased pipe-joined artist|tour|place|date|performance
    """
    return "|".join(_field(record, name) for name in KEY_FIELDS).lower()


def checksum(key: str) -> str:
    """Return a deterministic 12-hex-character digest of an event key."""
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:CHECKSUM_LENGTH]


def dedupe_batch(records: list[NormalizedRecord]) -> DedupeResult:
    """
    Collapse records sharing an event key, keeping the first occurrence.

    Args:
        records: Normalized records in extraction order

    Returns:
        DedupeResult with checksummed unique records
    """
    unique: dict[str, DedupedRecord] = {}

    for record in records:
        key = event_key(record)
        if key in unique:
            continue
        unique[key] = DedupedRecord(
            **record.model_dump(exclude={"checksum"}), checksum=checksum(key)
        )

    result = DedupeResult(
        records=list(unique.values()),
        original_count=len(records),
        duplicates_removed=len(records) - len(unique),
    )

    if result.duplicates_removed:
        logger.debug(
            "batch_deduplicated",
            original=result.original_count,
            removed=result.duplicates_removed,
        )

    return result


def partition_stored(
    records: list[DedupedRecord], stored_checksums: Iterable[str]
) -> tuple[list[DedupedRecord], list[DedupedRecord]]:
    """
    Split records into (new, already_stored) by checksum.

    Args:
        records: Deduplicated batch
        stored_checksums: Checksums already present in storage

    Returns:
        Tuple of (records to write, records to skip)
    """
    stored = set(stored_checksums)
    fresh: list[DedupedRecord] = []
    skipped: list[DedupedRecord] = []

    for record in records:
        if record.checksum in stored:
            skipped.append(record)
        else:
            fresh.append(record)

    return fresh, skipped
