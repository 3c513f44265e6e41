"""Shared pytest fixtures for tour worker tests."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from servers.tour_worker.config.settings import Settings
from servers.tour_worker.errors import RenderFailure
from servers.tour_worker.extractors.calendar import CalendarFeedStrategy
from servers.tour_worker.extractors.chain import ExtractorChain
from servers.tour_worker.extractors.feed import SyndicationFeedStrategy
from servers.tour_worker.extractors.html_heuristic import HtmlHeuristicStrategy
from servers.tour_worker.extractors.structured import StructuredDataStrategy
from servers.tour_worker.models import Candidate, RenderedPage
from servers.tour_worker.orchestrator import CrawlOrchestrator
from servers.tour_worker.resilience.rate_limiter import RateLimiter
from servers.tour_worker.resilience.robots import RobotsGate
from servers.tour_worker.storage import InMemoryStore


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Monotonic seconds counter for the rate limiter."""

    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeRenderer:
    """Renderer returning canned HTML, or failing on demand."""

    def __init__(self, html: str = "", final_url: str | None = None, fail: str | None = None):
        self.html = html
        self.final_url = final_url
        self.fail = fail
        self.calls: list[str] = []

    async def render(self, url: str) -> RenderedPage:
        self.calls.append(url)
        if self.fail:
            raise RenderFailure(url, self.fail)
        return RenderedPage(html=self.html, final_url=self.final_url or url)


class FlakyStore(InMemoryStore):
    """InMemoryStore whose upsert fails for selected artists."""

    def __init__(self, failing_artists: set[str]):
        super().__init__()
        self.failing_artists = failing_artists

    async def upsert_event(self, record) -> None:
        if record.artist in self.failing_artists:
            raise RuntimeError("constraint violated")
        await super().upsert_event(record)


@pytest.fixture
def settings() -> Settings:
    """Default settings with the HTTP renderer and no AI key."""
    return Settings(renderer="http")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def offline_chain() -> ExtractorChain:
    """Chain without the AI strategy."""
    return ExtractorChain(
        StructuredDataStrategy(),
        HtmlHeuristicStrategy(),
        CalendarFeedStrategy(),
        SyndicationFeedStrategy(),
    )


@pytest.fixture
def make_orchestrator(settings, store, clock, monotonic, offline_chain):
    """Build an orchestrator around a FakeRenderer; robots checks are off."""

    def _make(renderer: FakeRenderer, **overrides) -> CrawlOrchestrator:
        parts = {
            "settings": settings,
            "store": store,
            "renderer": renderer,
            "rate_limiter": RateLimiter(
                capacity=settings.max_requests_per_host_per_min, clock=monotonic
            ),
            "robots": RobotsGate(settings.user_agent, respect_robots=False),
            "chain": offline_chain,
            "clock": clock,
        }
        parts.update(overrides)
        return CrawlOrchestrator(**parts)

    return _make


def jsonld_page(*events: dict) -> str:
    """Wrap schema.org objects in a minimal HTML page."""
    payload = json.dumps(list(events) if len(events) != 1 else events[0], ensure_ascii=False)
    return (
        "<html><head>"
        f'<script type="application/ld+json">{payload}</script>'
        "</head><body><p>Schedule</p></body></html>"
    )


@pytest.fixture
def tour_x_event() -> dict:
    """A single schema.org MusicEvent."""
    return {
        "@context": "https://schema.org",
        "@type": "MusicEvent",
        "name": "Tour X",
        "performer": {"@type": "MusicGroup", "name": "Artist Y"},
        "location": {"@type": "Place", "name": "Hall Z"},
        "startDate": "2025-11-01T18:30:00+09:00",
    }


@pytest.fixture
def tour_x_page(tour_x_event: dict) -> str:
    return jsonld_page(tour_x_event)


@pytest.fixture
def schedule_page() -> str:
    """Japanese schedule page without structured data."""
    return """
    <html><body>
      <header><nav>ホーム / ニュース</nav></header>
      <h1>Sample LIVE TOUR 2025</h1>
      <main>
        <p>出演：Band A</p>
        <div>2025年10月14日(火)</div>
        <div>OPEN 17:30 / 開演 18:30</div>
        <div>会場：Zepp Haneda</div>
        <div>2025年10月20日(月)</div>
        <div>開演 19:00</div>
        <div>東京ドーム</div>
      </main>
    </body></html>
    """


@pytest.fixture
def ics_payload() -> str:
    return "\r\n".join([
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//tour-worker//test//EN",
        "BEGIN:VEVENT",
        "UID:1@example.com",
        "DTSTAMP:20250101T000000Z",
        "SUMMARY:Winter Tour",
        "LOCATION:Hall Z",
        "DTSTART:20251201T183000",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:2@example.com",
        "DTSTAMP:20250101T000000Z",
        "SUMMARY:Fan Meeting",
        "DTSTART;VALUE=DATE:20251205",
        "END:VEVENT",
        "END:VCALENDAR",
        "",
    ])


@pytest.fixture
def rss_payload() -> str:
    return """<rss version="2.0"><channel>
      <title>News</title>
      <link>https://example.com/</link>
      <description>Artist news</description>
      <item>
        <title>Live Tour 2025 追加公演</title>
        <link>https://example.com/news/1</link>
        <description><![CDATA[2025年12月24日(水) 開演 18:00<br/>会場：Zepp Haneda]]></description>
      </item>
    </channel></rss>"""


@pytest.fixture
def sample_candidates() -> list[Candidate]:
    """Candidates spanning two venues of one tour, plus a duplicate."""
    return [
        Candidate(tour="T", place="P1", date="2025-10-01", performance="18:00", artist="A"),
        Candidate(tour="T", place="P1", date="2025-10-02", performance="18:00", artist="A"),
        Candidate(tour="T", place="P2", date="2025-10-05", performance="17:00", artist="A"),
        Candidate(tour="T", place="P1", date="2025-10-01", performance="18:00", artist="A"),
    ]


@pytest.fixture
def page_with_jsonld():
    """Factory for pages embedding schema.org objects."""
    return jsonld_page


@pytest.fixture
def renderer():
    """Factory for FakeRenderer instances."""
    return FakeRenderer


@pytest.fixture
def flaky_store():
    """Factory for stores that reject upserts for some artists."""
    return FlakyStore
