"""
Structured-data strategy: schema.org Event objects in JSON-LD.

Handles a single object, a top-level array, and "@graph" containers.
Maps:
- performer (object, string or list, joined with ", ") -> artist
- location (object, string or list, first wins) -> place
- superEvent / isPartOf / name -> tour
- startDate -> date and performance
"""

from collections.abc import Iterator
import json
from typing import Any

from bs4 import BeautifulSoup
from dateutil.parser import isoparse
import structlog

from ..models import Candidate
from .base import ExtractionStrategy

logger = structlog.get_logger()


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _name_of(value: Any) -> str:
    """Name of a schema.org Thing given as object or plain string."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        name = value.get("name")
        return name.strip() if isinstance(name, str) else ""
    return ""


def _iter_nodes(data: Any) -> Iterator[dict]:
    """Yield every object in a JSON-LD document, expanding arrays and @graph."""
    if isinstance(data, list):
        for item in data:
            yield from _iter_nodes(item)
    elif isinstance(data, dict):
        if "@graph" in data:
            yield from _iter_nodes(data["@graph"])
        else:
            yield data


def _is_event(node: dict) -> bool:
    # MusicEvent, TheaterEvent etc. are Event subtypes
    types = [str(t).lower() for t in _as_list(node.get("@type"))]
    return any(t.endswith("event") for t in types)


def split_start_date(start: str) -> tuple[str, str]:
    """
    Split an ISO-8601 startDate into (date, "HH:MM").

    The wall-clock time is kept in the event's own offset, so
    "2025-11-01T18:30:00+09:00" gives ("2025-11-01", "18:30").
    A date-only value gives an empty time.
    """
    start = start.strip()
    if "T" not in start:
        return start, ""
    try:
        parsed = isoparse(start)
    except (ValueError, OverflowError):
        date_part, _, time_part = start.partition("T")
        return date_part, time_part[:5]
    return parsed.date().isoformat(), parsed.strftime("%H:%M")


def event_to_candidate(node: dict) -> Candidate:
    """Map one schema.org Event object to a Candidate."""
    performers = [_name_of(p) for p in _as_list(node.get("performer"))]
    locations = [_name_of(loc) for loc in _as_list(node.get("location"))]

    tour = ""
    for parent_key in ("superEvent", "isPartOf"):
        parents = _as_list(node.get(parent_key))
        if parents and _name_of(parents[0]):
            tour = _name_of(parents[0])
            break
    if not tour:
        tour = _name_of(node.get("name"))

    start = node.get("startDate")
    date, performance = split_start_date(start) if isinstance(start, str) else ("", "")

    return Candidate(
        tour=tour,
        place=locations[0] if locations else "",
        date=date,
        performance=performance,
        artist=", ".join(p for p in performers if p),
    )


class StructuredDataStrategy(ExtractionStrategy):
    """Extract events from <script type="application/ld+json"> blocks."""

    name = "structured"

    async def extract(self, html: str) -> list[Candidate]:
        soup = BeautifulSoup(html, "html.parser")
        candidates: list[Candidate] = []

        for script in soup.find_all("script"):
            if (script.get("type") or "").strip().lower() != "application/ld+json":
                continue
            text = script.string or script.get_text()
            if not text or not text.strip():
                continue
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                logger.debug("jsonld_unparsable", error=str(e))
                continue

            for node in _iter_nodes(data):
                if _is_event(node):
                    candidates.append(event_to_candidate(node))

        return candidates
