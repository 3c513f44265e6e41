"""
Hand-tuned token lists for Japanese live/concert pages.

These drive the HTML and feed heuristics. They are data, not logic:
override any list with a JSON file (HEURISTICS_FILE) such as

    {"venue_suffixes": ["ホール", "Hall"], "window": 8}
"""

from functools import cached_property
import json
import re
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()


class ExtractionHeuristics(BaseModel):
    """Token lists and window size used by the text heuristics."""

    venue_suffixes: list[str] = Field(default_factory=lambda: [
        "ホール", "ドーム", "スタジアム", "劇場", "会館", "シアター",
        "アリーナ", "フォーラム", "センター", "パシフィコ", "Zepp",
        "GARDEN", "EX THEATER", "BIGCAT", "サンプラザ", "クラブクアトロ",
        "Hall", "Dome", "Stadium", "Theater", "Theatre", "Arena",
    ])
    venue_labels: list[str] = Field(default_factory=lambda: ["会場", "venue", "開催場所"])
    noise_labels: list[str] = Field(default_factory=lambda: [
        "day", "open/start", "open", "start", "area", "venue",
        "info", "schedule", "topics", "会場",
    ])
    tour_keywords: list[str] = Field(default_factory=lambda: ["tour", "ツアー"])
    artist_labels: list[str] = Field(default_factory=lambda: ["出演者", "出演", "artist"])
    content_selectors: list[str] = Field(default_factory=lambda: [
        "main", "article", "section", ".content", ".post", ".entry", ".detail",
    ])
    window: int = 6

    @staticmethod
    def _alternation(tokens: list[str]) -> str:
        # Longest first so "EX THEATER" wins over "THEATER"
        ordered = sorted(tokens, key=len, reverse=True)
        return "|".join(re.escape(t) for t in ordered)

    @cached_property
    def venue_suffix_re(self) -> re.Pattern:
        return re.compile(f"({self._alternation(self.venue_suffixes)})", re.IGNORECASE)

    @cached_property
    def venue_label_re(self) -> re.Pattern:
        return re.compile(f"({self._alternation(self.venue_labels)})", re.IGNORECASE)

    @cached_property
    def noise_re(self) -> re.Pattern:
        # "open / start" and "open/start" are the same label
        labels = [re.escape(t).replace("/", r"\s*/\s*") for t in self.noise_labels]
        return re.compile(f"^({'|'.join(labels)})$", re.IGNORECASE)

    @cached_property
    def tour_re(self) -> re.Pattern:
        return re.compile(self._alternation(self.tour_keywords), re.IGNORECASE)

    @cached_property
    def artist_label_re(self) -> re.Pattern:
        # A label stands alone or is followed by a separator: "出演：Band A", "Artist"
        return re.compile(
            rf"^\s*({self._alternation(self.artist_labels)})\s*(?:[:：/]|$)", re.IGNORECASE
        )

    def is_noise_line(self, line: str) -> bool:
        """Label-only lines such as "OPEN / START" or "会場：" carry no payload."""
        stripped = re.sub(r"[:：\-]", "", line).strip()
        if not stripped:
            return True
        return bool(self.noise_re.match(stripped))


def load_heuristics(path: Optional[Path] = None) -> ExtractionHeuristics:
    """
    Load heuristics, overriding defaults with a JSON file when given.

    Args:
        path: Optional JSON file with any subset of the fields

    Returns:
        ExtractionHeuristics
    """
    if path is None:
        return ExtractionHeuristics()

    overrides = json.loads(path.read_text(encoding="utf-8"))
    logger.info("loaded_heuristics", path=str(path), fields=sorted(overrides))
    return ExtractionHeuristics(**overrides)
