"""
Syndication-feed strategy: RSS 2.0, RSS 1.0 (RDF) and Atom.

Feeds rarely carry structured event fields, so each entry's title and
description are run through the same date, time and venue heuristics
as page text. The entry title becomes the tour name.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup
import feedparser
import structlog

from ..config.heuristics import ExtractionHeuristics
from ..models import Candidate
from ..normalize import to_iso_date, to_performance_time
from .base import ExtractionStrategy
from .text import guess_venue_from_text

logger = structlog.get_logger()

FEED_MARKERS = re.compile(r"<(rss|feed|rdf:RDF)[\s>]", re.IGNORECASE)


def _plain(markup: str) -> str:
    if "<" not in markup:
        return markup
    return BeautifulSoup(markup, "html.parser").get_text("\n")


class SyndicationFeedStrategy(ExtractionStrategy):
    """Extract events from RSS/Atom XML."""

    name = "feed"

    def __init__(self, heuristics: Optional[ExtractionHeuristics] = None):
        self.heuristics = heuristics or ExtractionHeuristics()

    async def extract(self, html: str) -> list[Candidate]:
        if not html or not FEED_MARKERS.search(html):
            return []

        feed = feedparser.parse(html)
        candidates: list[Candidate] = []

        for entry in feed.entries:
            title = _plain(entry.get("title", "")).strip()
            description = _plain(entry.get("description") or entry.get("summary") or "")
            text = f"{title}\n{description}"

            candidates.append(Candidate(
                tour=title,
                place=guess_venue_from_text(text, self.heuristics),
                date=to_iso_date(text),
                performance=to_performance_time(text),
                artist="",
            ))

        if feed.bozo and not candidates:
            logger.debug("feed_unparsable", error=str(feed.get("bozo_exception", "")))

        return candidates
