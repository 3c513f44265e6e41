"""
Event extraction strategies.

Each strategy implements:
- async extract(html) -> list[Candidate]
- returns [] when it finds nothing; the chain absorbs exceptions

Priority order: structured data, HTML heuristics, ICS, RSS/Atom, AI.
"""

from .ai import GeminiStrategy, parse_ai_response
from .base import ExtractionStrategy
from .calendar import CalendarFeedStrategy
from .chain import ExtractorChain, build_chain
from .feed import SyndicationFeedStrategy
from .html_heuristic import HtmlHeuristicStrategy
from .structured import StructuredDataStrategy

__all__ = [
    "CalendarFeedStrategy",
    "ExtractionStrategy",
    "ExtractorChain",
    "GeminiStrategy",
    "HtmlHeuristicStrategy",
    "StructuredDataStrategy",
    "SyndicationFeedStrategy",
    "build_chain",
    "parse_ai_response",
]
