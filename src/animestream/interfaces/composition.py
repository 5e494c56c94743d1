"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from animestream.application.use_cases.episode_playback import EpisodePlaybackUseCase
from animestream.infrastructure.browser.playwright_session import (
    PlaywrightSessionFactory,
)
from animestream.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from animestream.infrastructure.cache.episode_cache import EpisodeCache
from animestream.infrastructure.concurrency import ExtractionGate
from animestream.infrastructure.extraction.engine import VideoExtractor
from animestream.infrastructure.metrics import MetricsCollector
from animestream.infrastructure.providers.headers import headers_for
from animestream.infrastructure.sources.analyzer import SourceAnalyzer
from animestream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and clean up all resources.

    Order matters:
        1. Metrics (recorded by everything below)
        2. Disk cache (only when episode cache persistence is on)
        3. HTTP client (HEAD verification)
        4. Browser session factory (Chromium launched lazily)
        5. Extractor, analyzer, episode cache, gate
        6. Playback use case
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Metrics
    state.metrics = MetricsCollector()

    # 2) Episode cache (+ optional disk persistence)
    state.episode_cache = EpisodeCache()
    state.cache = None
    if config.episode_cache.persist:
        cache = DiskcacheAdapter(
            directory=config.cache_dir,
            ttl_seconds=config.cache_ttl_seconds,
        )
        await cache.__aenter__()
        state.cache = cache
        await state.episode_cache.load(cache)

    # 3) HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    log.info("http_client_initialized")

    # 4) Browser sessions
    state.browser = PlaywrightSessionFactory(
        headless=config.playwright_headless,
        stealth=config.playwright_stealth,
    )
    log.info(
        "browser_configured",
        headless=config.playwright_headless,
        stealth=config.playwright_stealth,
    )

    # 5) Extraction services
    state.extractor = VideoExtractor(
        state.browser,
        config.extraction,
        metrics=state.metrics,
    )
    state.analyzer = SourceAnalyzer(
        fast_providers=config.sources.fast_providers,
        slow_providers=config.sources.slow_providers,
    )
    state.gate = ExtractionGate(session_slots=config.episode_cache.max_sessions)

    # 6) Playback
    state.playback_uc = EpisodePlaybackUseCase(
        extractor=state.extractor,
        analyzer=state.analyzer,
        cache=state.episode_cache,
        gate=state.gate,
        headers_fn=headers_for,
        warm_enabled=config.episode_cache.warm_enabled,
        warm_delay_seconds=config.episode_cache.warm_delay_seconds,
        metrics=state.metrics,
    )

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.playback_uc.aclose()
        log.info("playback_closed")

        await state.browser.cleanup()

        await state.http_client.aclose()
        log.info("http_client_closed")

        if state.cache is not None:
            await state.episode_cache.save(state.cache, ttl=config.cache_ttl_seconds)
            await state.cache.aclose()
            log.info("cache_closed")

        log.info("app_shutdown_complete")
