"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from animestream.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from animestream.application.use_cases.episode_playback import (
        EpisodePlaybackUseCase,
    )
    from animestream.domain.ports import BrowserSessionFactoryPort, CachePort
    from animestream.infrastructure.cache.episode_cache import EpisodeCache
    from animestream.infrastructure.concurrency import ExtractionGate
    from animestream.infrastructure.extraction.engine import VideoExtractor
    from animestream.infrastructure.metrics import MetricsCollector
    from animestream.infrastructure.sources.analyzer import SourceAnalyzer


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort | None
    http_client: httpx.AsyncClient
    browser: BrowserSessionFactoryPort

    # Extraction
    extractor: VideoExtractor
    analyzer: SourceAnalyzer
    episode_cache: EpisodeCache
    gate: ExtractionGate

    # Application services
    playback_uc: EpisodePlaybackUseCase

    # Metrics (in-memory counters)
    metrics: MetricsCollector
