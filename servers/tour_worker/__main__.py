"""
Command-line entry point for the tour crawl worker.

Run with:
    python -m servers.tour_worker serve
    python -m servers.tour_worker run <url>
    python -m servers.tour_worker extract <url> [--mode normal|ai|auto]
"""

import argparse
import asyncio
import json
import logging
import sys

import structlog

from .config.settings import Settings, validate_settings

logger = structlog.get_logger()


def configure_logging() -> None:
    """Send structlog output to stderr at INFO so stdout carries only results."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def serve(settings: Settings) -> int:
    import uvicorn

    from .app import create_app

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    return 0


async def run(settings: Settings, url: str) -> int:
    from .orchestrator import CrawlOrchestrator

    orchestrator = CrawlOrchestrator.from_settings(settings)
    try:
        result = await orchestrator.run_once(url)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"OK: {result.count} rows")
    return 0


async def extract(settings: Settings, url: str, mode: str) -> int:
    from .orchestrator import CrawlOrchestrator

    orchestrator = CrawlOrchestrator.from_settings(settings)
    try:
        result = await orchestrator.extract_only(url, use_ai=mode in ("ai", "auto"))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    payload = {
        "rows": [record.model_dump() for record in result.records],
        "usedAi": result.used_ai,
        "aiTried": result.ai_tried,
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Tour schedule crawl worker")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the HTTP worker")

    run_parser = sub.add_parser("run", help="Crawl one source and persist its events")
    run_parser.add_argument("url", help="Source page URL")

    extract_parser = sub.add_parser("extract", help="Preview extraction without persisting")
    extract_parser.add_argument("url", help="Page URL")
    extract_parser.add_argument(
        "--mode", choices=["normal", "ai", "auto"], default="auto",
        help="normal forbids the AI fallback",
    )

    args = parser.parse_args(argv)

    configure_logging()

    settings = Settings.from_env()
    for error in validate_settings(settings):
        logger.warning("settings_problem", detail=error)

    if args.command == "serve":
        return serve(settings)
    if args.command == "run":
        return asyncio.run(run(settings, args.url))
    return asyncio.run(extract(settings, args.url, args.mode))


if __name__ == "__main__":
    sys.exit(main())
