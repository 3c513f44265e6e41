"""Common interface for extraction strategies."""

from ..models import Candidate


class ExtractionStrategy:
    """One way of turning a page into unverified candidates.

    Subclasses set `name` and implement `extract`. A strategy returns an
    empty list when it finds nothing; the chain treats exceptions the same
    way, so strategies never depend on each other.
    """

    name: str = "strategy"
    uses_ai: bool = False

    @property
    def enabled(self) -> bool:
        """Whether the strategy is configured to run at all."""
        return True

    async def extract(self, html: str) -> list[Candidate]:
        raise NotImplementedError
