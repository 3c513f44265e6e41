"""
Calendar-feed strategy: one candidate per VEVENT in an ICS payload.

The payload may be the raw .ics body or a browser rendering of it
wrapped in HTML; the VCALENDAR block is located in either.
"""

from datetime import date, datetime
import re

from bs4 import BeautifulSoup
import icalendar
import structlog

from ..models import Candidate
from .base import ExtractionStrategy

logger = structlog.get_logger()

VCALENDAR_BLOCK = re.compile(r"BEGIN:VCALENDAR.*?END:VCALENDAR", re.DOTALL | re.IGNORECASE)


def _calendar_text(payload: str) -> str:
    if "BEGIN:VCALENDAR" not in payload.upper():
        return ""
    match = VCALENDAR_BLOCK.search(payload)
    if match and "<" not in match.group(0):
        return match.group(0)
    # Rendered inside <pre> by the browser; entities need unescaping
    text = BeautifulSoup(payload, "html.parser").get_text()
    match = VCALENDAR_BLOCK.search(text)
    return match.group(0) if match else ""


def _start_of(component) -> tuple[str, str]:
    """(date, "HH:MM") of DTSTART in the event's own timezone."""
    dtstart = component.get("dtstart")
    if dtstart is None:
        return "", ""
    value = dtstart.dt
    if isinstance(value, datetime):
        return value.date().isoformat(), value.strftime("%H:%M")
    if isinstance(value, date):
        return value.isoformat(), ""
    return "", ""


class CalendarFeedStrategy(ExtractionStrategy):
    """Extract events from iCalendar (ICS) text."""

    name = "ics"

    async def extract(self, html: str) -> list[Candidate]:
        text = _calendar_text(html or "")
        if not text:
            return []

        calendar = icalendar.Calendar.from_ical(text)
        candidates: list[Candidate] = []

        for component in calendar.walk("VEVENT"):
            day, time = _start_of(component)
            candidates.append(Candidate(
                tour=str(component.get("summary") or "").strip(),
                place=str(component.get("location") or "").strip(),
                date=day,
                performance=time,
                artist="",
            ))

        logger.debug("ics_parsed", events=len(candidates))
        return candidates
