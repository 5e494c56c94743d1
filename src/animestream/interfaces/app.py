"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from animestream.domain.entities.errors import (
    ExtractionBusyError,
    NoSeasonLoadedError,
    UnknownSourceError,
)
from animestream.infrastructure.config import AppConfig
from animestream.interfaces.app_state import AppState
from animestream.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create the FastAPI app (configuration only).

    Resources (browser, HTTP client, caches) are created in lifespan().
    """
    app = FastAPI(
        title="AnimeStream",
        description="Video URL extraction for embedded anime streaming mirrors",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from animestream.interfaces.api.extraction.router import (
        router as extraction_router,
    )
    from animestream.interfaces.api.playback.router import router as playback_router
    from animestream.interfaces.api.sources.router import router as sources_router
    from animestream.interfaces.api.stats.router import router as stats_router

    app.include_router(extraction_router, prefix="/api/v1")
    app.include_router(sources_router, prefix="/api/v1")
    app.include_router(playback_router, prefix="/api/v1")
    app.include_router(stats_router, prefix="/api/v1")

    @app.exception_handler(ExtractionBusyError)
    async def _busy(_: Request, exc: ExtractionBusyError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"error": "extraction_in_progress", "detail": str(exc)},
        )

    @app.exception_handler(NoSeasonLoadedError)
    async def _no_season(_: Request, exc: NoSeasonLoadedError) -> JSONResponse:
        return JSONResponse(
            status_code=409, content={"error": "no_season_loaded", "detail": str(exc)}
        )

    @app.exception_handler(UnknownSourceError)
    async def _unknown_source(_: Request, exc: UnknownSourceError) -> JSONResponse:
        return JSONResponse(
            status_code=404, content={"error": "unknown_source", "detail": str(exc)}
        )

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str | bool]:
        """Liveness probe, returns 200 as long as the process is running."""
        browser = getattr(app.state, "browser", None)
        return {
            "status": "ok",
            "browser_running": bool(getattr(browser, "is_running", False)),
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
