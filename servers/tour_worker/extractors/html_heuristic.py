"""
HTML-heuristic strategy for schedule pages without structured data.

Looks for patterns like:
    2025年10月14日(火)
    OPEN 17:30 / 開演 18:30
    会場：Zepp Haneda

Every line with a parseable date becomes a candidate. The show time and
venue are searched in a small window around it; tour and artist are
guessed once per document from headings and "出演"/"Artist" labels.
"""

from typing import Optional

from bs4 import BeautifulSoup, Tag
import structlog

from ..config.heuristics import ExtractionHeuristics
from ..models import Candidate
from ..normalize import to_iso_date, to_performance_time
from .base import ExtractionStrategy
from .text import find_venue_near, sanitize_line, split_lines

logger = structlog.get_logger()

NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]

# Calendars and feeds are handled by their own strategies
NON_HTML_PREFIXES = ("begin:vcalendar", "<?xml", "<rss", "<feed", "<rdf:rdf")


def _looks_like_feed_or_calendar(payload: str) -> bool:
    return payload.lstrip().lower().startswith(NON_HTML_PREFIXES)


def _contains(outer: Tag, inner: Tag) -> bool:
    """Identity-based containment; Tag equality is structural."""
    return inner is outer or any(parent is outer for parent in inner.parents)


def _content_blocks(soup: BeautifulSoup, selectors: list[str]) -> list[str]:
    """Text of prioritized content containers, falling back to <body>."""
    picked: list[Tag] = []
    for selector in selectors:
        try:
            elements = soup.select(selector)
        except (ValueError, TypeError):
            continue
        for element in elements:
            # Nested containers would repeat their text
            if any(_contains(p, element) for p in picked):
                continue
            picked = [p for p in picked if not _contains(element, p)]
            picked.append(element)

    if not picked:
        root = soup.body or soup
        return [root.get_text("\n")]
    return [element.get_text("\n") for element in picked]


def guess_tour(soup: BeautifulSoup, heuristics: ExtractionHeuristics) -> str:
    """First tour-like heading, else the first h1, else the first h2."""
    for heading in soup.find_all(["h1", "h2", "h3"]):
        text = heading.get_text(" ", strip=True)
        if text and heuristics.tour_re.search(text):
            return text

    for level in ("h1", "h2"):
        heading = soup.find(level)
        if heading:
            text = heading.get_text(" ", strip=True)
            if text:
                return text
    return ""


def _label_payload(text: str, heuristics: ExtractionHeuristics) -> str:
    """Text after a leading artist label, or "" when there is none."""
    match = heuristics.artist_label_re.match(text)
    if not match:
        return ""
    return text[match.end():].strip(" :：/-").strip()


def guess_artist(soup: BeautifulSoup, heuristics: ExtractionHeuristics) -> str:
    """
    Artist near an "出演"/"Artist" label in the page body, else the first h1/h2.

    A label with inline payload ("出演：Band A", or "<b>出演</b>：Band A")
    yields the payload; a bare label yields the text of the element that
    follows it. Labels in <head> are never considered.
    """
    root = soup.body or soup
    label = root.find(string=heuristics.artist_label_re)
    if label is not None and label.parent is not None:
        holder = label.parent
        for element in (holder, holder.parent):
            if element is None:
                continue
            text = element.get_text(" ", strip=True)
            if text and len(text) < 100:
                payload = _label_payload(text, heuristics)
                if payload:
                    return payload
        following = holder.find_next_sibling()
        if following is not None:
            text = following.get_text(" ", strip=True)
            if text:
                return text

    heading = root.find(["h1", "h2"])
    return heading.get_text(" ", strip=True) if heading else ""


def _time_near(lines: list[str], index: int, window: int) -> str:
    """Show time on the dated line or the following lines of the same entry."""
    time = to_performance_time(lines[index])
    if time:
        return time
    for j in range(index + 1, min(len(lines), index + window + 1)):
        # The next dated line starts another entry
        if to_iso_date(lines[j]):
            break
        time = to_performance_time(lines[j])
        if time:
            return time
    return ""


class HtmlHeuristicStrategy(ExtractionStrategy):
    """Scan visible page text line by line for dated entries."""

    name = "html"

    def __init__(self, heuristics: Optional[ExtractionHeuristics] = None):
        self.heuristics = heuristics or ExtractionHeuristics()

    async def extract(self, html: str) -> list[Candidate]:
        if not html or _looks_like_feed_or_calendar(html):
            return []

        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(NON_CONTENT_TAGS):
            tag.decompose()

        lines: list[str] = []
        for block in _content_blocks(soup, self.heuristics.content_selectors):
            lines.extend(sanitize_line(ln) for ln in split_lines(block))
        lines = [ln for ln in lines if ln]

        tour: Optional[str] = None
        artist: Optional[str] = None
        candidates: list[Candidate] = []

        for i, line in enumerate(lines):
            date = to_iso_date(line)
            if not date:
                continue

            if tour is None:
                tour = guess_tour(soup, self.heuristics)
                artist = guess_artist(soup, self.heuristics)

            candidates.append(Candidate(
                tour=tour,
                place=find_venue_near(lines, i, self.heuristics),
                date=date,
                performance=_time_near(lines, i, self.heuristics.window),
                artist=artist,
            ))

        logger.debug("html_heuristic_scan", lines=len(lines), candidates=len(candidates))
        return candidates
