"""Line-oriented text helpers shared by the HTML and feed heuristics."""

import re
from typing import Optional

from ..config.heuristics import ExtractionHeuristics

LABEL_PUNCTUATION = re.compile(r"^[\s:：は\-]+")


def sanitize_line(line: str) -> str:
    """Collapse whitespace and drop parentheses and bracketed annotations."""
    line = re.sub(r"\s+", " ", line)
    line = re.sub(r"【.*?】", "", line)
    line = re.sub(r"\[.*?\]", "", line)
    line = re.sub(r"[（）()]", "", line)
    return line.strip()


def split_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines."""
    text = text.replace("\u00a0", " ")
    return [ln.strip() for ln in re.split(r"\r?\n", text) if ln.strip()]


def venue_from_line(line: str, heuristics: ExtractionHeuristics) -> Optional[str]:
    """
    Venue named by a single line, if any.

    A labelled line ("会場：Zepp Haneda") yields its payload; a line
    containing a venue suffix ("東京ドーム") yields the whole line.
    Label-only noise lines yield None so the caller keeps scanning.
    """
    line = line.strip()
    if not line or heuristics.is_noise_line(line):
        return None

    if heuristics.venue_label_re.search(line):
        payload = heuristics.venue_label_re.sub("", line)
        payload = LABEL_PUNCTUATION.sub("", payload).strip()
        if payload:
            return payload

    if heuristics.venue_suffix_re.search(line):
        return line

    return None


def find_venue_near(
    lines: list[str], index: int, heuristics: ExtractionHeuristics
) -> str:
    """
    Search around a dated line for a venue.

    Scans forward from the line itself up to `window` lines, then
    backward up to `window` lines.

    Returns:
        Venue text or "" if none is found
    """
    window = heuristics.window
    forward = range(index, min(len(lines), index + window + 1))
    backward = range(index - 1, max(-1, index - window - 1), -1)

    for offsets in (forward, backward):
        for j in offsets:
            venue = venue_from_line(lines[j], heuristics)
            if venue:
                return venue
    return ""


def guess_venue_from_text(text: str, heuristics: ExtractionHeuristics) -> str:
    """First venue named anywhere in a block of plain text."""
    for line in split_lines(text):
        venue = venue_from_line(sanitize_line(line), heuristics)
        if venue:
            return venue
    return ""
