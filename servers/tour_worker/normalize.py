"""
Date/time normalization for extracted events.

- to_iso_date: "2025年10月14日(火)", "2025/1/1", "2025.10.14" -> "YYYY-MM-DD"
- to_performance_time: "開演 18:30", "18：30", "18時" -> "HH:MM"
- fill_ranges: tour/venue start and end dates across a batch

Neither parser guesses: unparseable text yields an empty string.
"""

from collections import defaultdict
from datetime import date
import re
import unicodedata
from typing import Optional

from .models import Candidate, NormalizedRecord


JAPANESE_DATE = re.compile(r"(20\d{2})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})(?!\d)")
SEPARATED_DATE = re.compile(
    r"(?<!\d)(20\d{2})\s*[/.\-]\s*(\d{1,2})\s*[/.\-]\s*(\d{1,2})(?!\d)"
)

# Digits glued to a preceding number ("14" + "9:00") are not a time
START_TIME = re.compile(r"開演\s*(\d{1,2})\s*:?\s*(\d{2})")
CLOCK_TIME = re.compile(r"(?<!\d)(\d{1,2})\s*:\s*(\d{2})")
HOUR_ONLY = re.compile(r"(?<!\d)(\d{1,2})\s*時")

ISO_TIME_SEPARATOR = re.compile(r"(?<=\d)T(?=\d)")


def _fold(text: str) -> str:
    """Fold full-width digits, colons and dots to ASCII."""
    return unicodedata.normalize("NFKC", text).replace("。", ".")


def _pad2(value: str) -> str:
    return value.zfill(2)


def to_iso_date(text: Optional[str]) -> str:
    """
    Convert date text to ISO format.

    Tries the Japanese long form first, then slash/dot/hyphen separated
    Y-M-D. Impossible calendar dates (month 13, Feb 30) are rejected
    outright, even when the text holds another valid date.

    Args:
        text: Free text containing a date

    Returns:
        "YYYY-MM-DD" or "" if no full date is present
    """
    if not text:
        return ""

    folded = _fold(text)

    for pattern in (JAPANESE_DATE, SEPARATED_DATE):
        match = pattern.search(folded)
        if not match:
            continue
        year, month, day = match.groups()
        try:
            date(int(year), int(month), int(day))
        except ValueError:
            # The first form found decides
            return ""
        return f"{year}-{_pad2(month)}-{_pad2(day)}"

    return ""


def to_performance_time(text: Optional[str]) -> str:
    """
    Convert a show time to 24-hour "HH:MM".

    Tries "開演HH:MM" (colon optional), then a bare "HH:MM",
    then hour-only "H時" which implies ":00".

    Args:
        text: Free text containing a time

    Returns:
        "HH:MM" or "" if no time is present
    """
    if not text:
        return ""

    folded = _fold(text)

    match = START_TIME.search(folded)
    if match:
        return f"{_pad2(match.group(1))}:{match.group(2)}"

    match = CLOCK_TIME.search(folded)
    if match:
        return f"{_pad2(match.group(1))}:{match.group(2)}"

    match = HOUR_ONLY.search(folded)
    if match:
        return f"{_pad2(match.group(1))}:00"

    return ""


def fill_ranges(records: list[NormalizedRecord]) -> list[NormalizedRecord]:
    """
    Fill tour and venue date ranges across a batch (in place).

    Records are grouped by tour and, independently, by place (an absent
    place is the "" group). Each record receives the min/max of its
    groups' non-empty dates, or "" when a group has no dated members.

    Args:
        records: Batch of normalized records

    Returns:
        The same list, mutated
    """
    by_tour: dict[str, list[str]] = defaultdict(list)
    by_place: dict[str, list[str]] = defaultdict(list)

    for record in records:
        if not record.date:
            continue
        by_tour[record.tour].append(record.date)
        by_place[record.place or ""].append(record.date)

    for record in records:
        # Zero-padded ISO dates sort lexicographically
        tour_dates = sorted(by_tour.get(record.tour, []))
        place_dates = sorted(by_place.get(record.place or "", []))

        record.tour_start_date = tour_dates[0] if tour_dates else ""
        record.tour_end_date = tour_dates[-1] if tour_dates else ""
        record.place_start_date = place_dates[0] if place_dates else ""
        record.place_end_date = place_dates[-1] if place_dates else ""

    return records


def to_record(candidate: Candidate, source_url: str) -> NormalizedRecord:
    """Normalize one candidate; range fields are left for fill_ranges."""
    raw_date = (candidate.date or "").strip()
    # ISO instants ("2025-11-01T18:30:00+09:00") carry the date before 'T'
    date_text = ISO_TIME_SEPARATOR.split(raw_date, maxsplit=1)[0]

    return NormalizedRecord(
        tour=(candidate.tour or "").strip(),
        place=(candidate.place or "").strip(),
        date=to_iso_date(date_text),
        performance=to_performance_time(candidate.performance)[:5],
        artist=(candidate.artist or "").strip(),
        source_url=source_url,
    )


def normalize_candidates(
    candidates: list[Candidate], source_url: str
) -> list[NormalizedRecord]:
    """Normalize a batch of candidates and fill their date ranges."""
    return fill_ranges([to_record(c, source_url) for c in candidates])
