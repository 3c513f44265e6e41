"""Ordered extractor chain with short-circuit on the first non-empty result."""

from typing import Optional

import structlog

from ..config.heuristics import ExtractionHeuristics
from ..config.settings import Settings
from ..errors import StrategyFailure
from ..models import ChainResult
from .ai import GeminiStrategy
from .base import ExtractionStrategy
from .calendar import CalendarFeedStrategy
from .feed import SyndicationFeedStrategy
from .html_heuristic import HtmlHeuristicStrategy
from .structured import StructuredDataStrategy

logger = structlog.get_logger()


class ExtractorChain:
    """Run extraction strategies in priority order until one finds events.

    Later strategies never run once an earlier one has produced
    candidates. A strategy that raises is logged and treated as having
    found nothing; it never aborts the chain.
    """

    def __init__(self, *strategies: ExtractionStrategy):
        """Initialize chain with ordered strategies.

        Args:
            *strategies: Strategies to try in order
        """
        self.strategies = strategies

    async def extract(self, html: str, allow_ai: bool = True) -> ChainResult:
        """Extract candidates from a document.

        Args:
            html: Rendered page (or feed/calendar body)
            allow_ai: When False, AI strategies are skipped entirely

        Returns:
            ChainResult with the winning strategy's candidates, its name,
            and whether an AI strategy was invoked
        """
        ai_tried = False

        for i, strategy in enumerate(self.strategies):
            if strategy.uses_ai and not allow_ai:
                continue
            if not strategy.enabled:
                logger.debug("strategy_disabled", strategy=strategy.name)
                continue

            ai_tried = ai_tried or strategy.uses_ai

            try:
                candidates = await strategy.extract(html)
            except Exception as e:
                failure = StrategyFailure(strategy.name, e)
                logger.warning(
                    "strategy_failed",
                    strategy=strategy.name,
                    attempt=i + 1,
                    total_strategies=len(self.strategies),
                    error=str(failure),
                )
                continue

            if candidates:
                logger.info(
                    "strategy_matched",
                    strategy=strategy.name,
                    attempt=i + 1,
                    candidates=len(candidates),
                )
                return ChainResult(
                    candidates=candidates, strategy=strategy.name, ai_tried=ai_tried
                )

        logger.info(
            "extractor_chain_exhausted",
            strategies=[s.name for s in self.strategies],
            ai_tried=ai_tried,
        )
        return ChainResult(candidates=[], strategy=None, ai_tried=ai_tried)


def build_chain(
    settings: Settings, heuristics: Optional[ExtractionHeuristics] = None
) -> ExtractorChain:
    """Default chain: structured data, HTML heuristics, ICS, RSS/Atom, AI."""
    heuristics = heuristics or settings.load_heuristics()
    return ExtractorChain(
        StructuredDataStrategy(),
        HtmlHeuristicStrategy(heuristics),
        CalendarFeedStrategy(),
        SyndicationFeedStrategy(heuristics),
        GeminiStrategy(
            settings.gemini_api_key,
            model=settings.gemini_model,
            text_budget=settings.ai_text_budget,
            timeout=settings.request_timeout,
        ),
    )
