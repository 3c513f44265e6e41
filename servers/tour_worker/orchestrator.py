"""
Crawl orchestration for one source URL.

run_once:
    cooldown -> rate limit -> robots -> render -> extract -> normalize
    -> dedup -> persist, then record the source's status.

extract_only:
    rate limit -> robots -> render -> extract -> normalize, with in-batch
    dedup only. Nothing is read from or written to storage.

The cooldown check is a soft guard: two runs for the same source that
start within the same instant can both pass it.
"""

from datetime import datetime, timezone
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import structlog

from .config.settings import Settings
from .dedup import dedupe_batch, partition_stored
from .errors import (
    CooldownActive,
    PersistenceFailure,
    RateLimitExceeded,
    RenderFailure,
    RobotsDisallowed,
)
from .extractors.chain import ExtractorChain, build_chain
from .models import (
    DedupedRecord,
    ExtractResult,
    PersistStats,
    RenderedPage,
    RunResult,
    RunState,
    SourceStatus,
)
from .normalize import normalize_candidates
from .resilience.rate_limiter import RateLimiter
from .resilience.robots import RobotsGate
from .sources import Renderer, build_renderer
from .storage import EventStore, build_store

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CrawlOrchestrator:
    """Sequence the polite-crawling gates and the extraction pipeline."""

    def __init__(
        self,
        settings: Settings,
        store: EventStore,
        renderer: Renderer,
        rate_limiter: RateLimiter,
        robots: RobotsGate,
        chain: ExtractorChain,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.renderer = renderer
        self.rate_limiter = rate_limiter
        self.robots = robots
        self.chain = chain
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "CrawlOrchestrator":
        """Wire the default collaborators from settings."""
        return cls(
            settings=settings,
            store=build_store(settings.database_path),
            renderer=build_renderer(settings),
            rate_limiter=RateLimiter(capacity=settings.max_requests_per_host_per_min),
            robots=RobotsGate(
                settings.user_agent,
                timeout=settings.request_timeout,
                respect_robots=settings.respect_robots_txt,
            ),
            chain=build_chain(settings),
        )

    def _enter(self, state: RunState, url: str) -> None:
        logger.debug("run_state", state=state.value, source_url=url)

    async def _check_cooldown(self, source_url: str) -> None:
        status = await self.store.get_source_status(source_url)
        if status is None or status.last_crawled_at is None:
            return

        last = status.last_crawled_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)

        elapsed = (self.clock() - last).total_seconds()
        cooldown = self.settings.crawl_cooldown_seconds
        if elapsed < cooldown:
            logger.info("cooldown_active", source_url=source_url, elapsed=round(elapsed, 1))
            raise CooldownActive(source_url, cooldown - elapsed)

    async def _check_gates(self, url: str) -> None:
        self._enter(RunState.RATE_LIMIT_CHECK, url)
        if not self.rate_limiter.allow(url):
            raise RateLimitExceeded(urlparse(url).hostname or "")

        self._enter(RunState.ROBOTS_CHECK, url)
        if not await self.robots.can_fetch(url):
            raise RobotsDisallowed(url)

    async def _render(self, url: str) -> RenderedPage:
        self._enter(RunState.RENDERING, url)
        try:
            return await self.renderer.render(url)
        except RenderFailure as e:
            logger.error("render_failed", source_url=url, reason=e.reason)
            raise
        except Exception as e:
            logger.error("render_failed", source_url=url, reason=str(e))
            raise RenderFailure(url, str(e)) from e

    async def _persist(self, records: list[DedupedRecord]) -> PersistStats:
        stats = PersistStats()
        if not records:
            return stats

        stored = await self.store.existing_checksums(r.checksum for r in records)
        fresh, skipped = partition_stored(records, stored)
        stats.skipped = len(skipped)

        for record in fresh:
            try:
                await self.store.upsert_event(record)
            except Exception as e:
                failure = PersistenceFailure(record.key, e)
                logger.error("upsert_failed", error=str(failure), checksum=record.checksum)
                stats.failed += 1
                continue
            stats.written += 1

        return stats

    async def run_once(self, source_url: str) -> RunResult:
        """
        Crawl one source and persist its new events.

        Args:
            source_url: Page to crawl

        Returns:
            RunResult; its count is the number of newly written rows

        Raises:
            CooldownActive: Source crawled less than the cooldown ago
            RateLimitExceeded: Host bucket empty
            RobotsDisallowed: robots.txt disallows the URL
            RenderFailure: Page could not be rendered (status recorded as failed)
        """
        started = time.perf_counter()
        self._enter(RunState.IDLE, source_url)

        try:
            self._enter(RunState.COOLDOWN_CHECK, source_url)
            await self._check_cooldown(source_url)
            await self._check_gates(source_url)

            try:
                page = await self._render(source_url)
            except RenderFailure:
                await self.store.record_source_status(SourceStatus(
                    source_url=source_url,
                    last_crawled_at=self.clock(),
                    last_status="failed",
                ))
                raise
        except Exception:
            self._enter(RunState.FAILED, source_url)
            raise

        self._enter(RunState.EXTRACTING, source_url)
        chain_result = await self.chain.extract(page.html)

        self._enter(RunState.NORMALIZING, source_url)
        records = normalize_candidates(chain_result.candidates, page.final_url)

        self._enter(RunState.DEDUPLICATING, source_url)
        deduped = dedupe_batch(records)

        self._enter(RunState.PERSISTING, source_url)
        stats = await self._persist(deduped.records)

        await self.store.record_source_status(SourceStatus(
            source_url=source_url,
            last_crawled_at=self.clock(),
            last_status="success",
        ))

        result = RunResult(
            source_url=source_url,
            final_url=page.final_url,
            extracted=len(records),
            unique=len(deduped.records),
            stats=stats,
            strategy=chain_result.strategy,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

        self._enter(RunState.DONE, source_url)
        logger.info(
            "run_completed",
            source_url=source_url,
            strategy=result.strategy,
            extracted=result.extracted,
            written=stats.written,
            skipped=stats.skipped,
            failed=stats.failed,
            duration_ms=result.duration_ms,
        )
        return result

    async def extract_only(self, url: str, use_ai: bool = True) -> ExtractResult:
        """
        Preview what a crawl of the URL would extract.

        Args:
            url: Page to render
            use_ai: Whether the AI strategy may run as a last resort

        Returns:
            ExtractResult with in-batch-deduplicated records
        """
        await self._check_gates(url)
        page = await self._render(url)

        self._enter(RunState.EXTRACTING, url)
        chain_result = await self.chain.extract(page.html, allow_ai=use_ai)

        self._enter(RunState.NORMALIZING, url)
        records = normalize_candidates(chain_result.candidates, page.final_url)
        deduped = dedupe_batch(records)

        logger.info(
            "extract_completed",
            url=url,
            strategy=chain_result.strategy,
            rows=len(deduped.records),
            ai_tried=chain_result.ai_tried,
        )

        return ExtractResult(
            records=[
                record.model_dump(exclude={"checksum"}) for record in deduped.records
            ],
            used_ai=chain_result.used_ai,
            ai_tried=chain_result.ai_tried,
            strategy=chain_result.strategy,
        )


def build_orchestrator(settings: Optional[Settings] = None) -> CrawlOrchestrator:
    """Orchestrator configured from the environment."""
    return CrawlOrchestrator.from_settings(settings or Settings.from_env())
