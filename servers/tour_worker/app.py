"""
HTTP surface for the crawl worker.

GET /health   liveness probe, never loads the pipeline
GET /run      full crawl of ?url=, persists new events
GET /extract  preview extraction of ?url= (&mode=normal|ai|auto)

Pipeline failures are reported in the body with status 200; only a
malformed request gets a 4xx.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config.settings import Settings

logger = structlog.get_logger()

EXTRACT_MODES = ("normal", "ai", "auto")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app; the orchestrator is created on first use."""
    settings = settings or Settings.from_env()

    app = FastAPI(title="tour-worker")
    app.state.settings = settings
    app.state.orchestrator = None
    app.state.orchestrator_lock = asyncio.Lock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    async def get_orchestrator(request: Request):
        state = request.app.state
        if state.orchestrator is None:
            async with state.orchestrator_lock:
                if state.orchestrator is None:
                    from .orchestrator import CrawlOrchestrator

                    state.orchestrator = CrawlOrchestrator.from_settings(state.settings)
                    logger.info("pipeline_loaded")
        return state.orchestrator

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/run")
    async def run(request: Request, url: Optional[str] = Query(default=None)):
        if not url:
            return JSONResponse(status_code=400, content={"ok": False, "error": "url is required"})

        try:
            orchestrator = await get_orchestrator(request)
            result = await orchestrator.run_once(url)
        except Exception as e:
            logger.warning("run_request_failed", url=url, error=str(e))
            return {"ok": False, "error": str(e)}

        return {"ok": True, "count": result.count}

    @app.get("/extract")
    async def extract(
        request: Request,
        url: Optional[str] = Query(default=None),
        mode: str = Query(default="auto"),
    ):
        if not url:
            return JSONResponse(status_code=400, content={"rows": [], "error": "url is required"})
        if mode not in EXTRACT_MODES:
            return JSONResponse(
                status_code=400,
                content={"rows": [], "error": f"mode must be one of {', '.join(EXTRACT_MODES)}"},
            )

        try:
            orchestrator = await get_orchestrator(request)
            result = await orchestrator.extract_only(url, use_ai=mode in ("ai", "auto"))
        except Exception as e:
            logger.warning("extract_request_failed", url=url, error=str(e))
            return {"rows": [], "error": str(e)}

        return {
            "rows": [record.model_dump() for record in result.records],
            "usedAi": result.used_ai,
            "aiTried": result.ai_tried,
        }

    return app
