"""Episode playback use case.

Drives one viewer session over a loaded season:

1. serve the adjacent-episode cache when it has the episode,
2. otherwise take the foreground token, pick the best mirror for the
   episode and extract,
3. on a recoverable failure retry once with the best alternative mirror,
4. cache successes and warm the previous/next episode in the background.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from animestream.domain.entities.errors import (
    NoSeasonLoadedError,
    UnknownSourceError,
)
from animestream.domain.entities.extraction import (
    CacheEntry,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    ExtractionToken,
)
from animestream.domain.entities.sources import (
    AlternativeSource,
    EpisodeChoice,
    EpisodeListing,
    SourceAnalysis,
)
from animestream.domain.ports.video_extractor import VideoExtractorPort

log = structlog.get_logger(__name__)


class _SourceAnalyzer(Protocol):
    def analyze_all_sources(
        self, listing: EpisodeListing, language: str
    ) -> dict[str, SourceAnalysis]: ...

    def recommend_best_source(
        self, analyses: Mapping[str, SourceAnalysis]
    ) -> str | None: ...

    def find_best_alternative_for_episode(
        self,
        index: int,
        analyses: Mapping[str, SourceAnalysis],
        exclude_source: str | None,
    ) -> AlternativeSource | None: ...

    def best_episode_url(
        self, index: int, mirrors: Mapping[str, Sequence[str]], current_source: str
    ) -> EpisodeChoice | None: ...

    def log_report(
        self, analyses: Mapping[str, SourceAnalysis], language: str
    ) -> object: ...

    def is_extraction_error(
        self, error: ExtractionFailure | str | None
    ) -> bool: ...


class _EpisodeCache(Protocol):
    def get(self, season_id: str, index: int) -> CacheEntry | None: ...

    def put(
        self, season_id: str, index: int, video_url: str, embed_url: str
    ) -> CacheEntry | None: ...

    def clear(self) -> None: ...

    def retain(self, keep: Callable[[CacheEntry], bool]) -> int: ...


class _ExtractionGate(Protocol):
    @property
    def busy(self) -> bool: ...

    def foreground(self) -> AbstractAsyncContextManager[ExtractionToken]: ...

    def background(self) -> AbstractAsyncContextManager[ExtractionToken | None]: ...


class _MetricsRecorder(Protocol):
    def record_warm(self, count: int) -> None: ...


@dataclass
class PlaybackSelection:
    """Season, language and mirror currently being watched."""

    season_id: str
    listing: EpisodeListing
    language: str
    source: str
    analyses: dict[str, SourceAnalysis] = field(default_factory=dict)

    @property
    def mirrors(self) -> Mapping[str, Sequence[str]]:
        return self.listing.get(self.language) or {}

    @property
    def episode_count(self) -> int:
        urls = self.mirrors.get(self.source) or ()
        return len(urls)


@dataclass(frozen=True)
class PlaybackOutcome:
    """Result of one ``play`` call."""

    index: int
    result: ExtractionResult
    source: str | None = None
    from_cache: bool = False
    used_alternative: bool = False


def _is_listed(entry: CacheEntry, mirrors: Mapping[str, Sequence[str]]) -> bool:
    """Whether *entry* was extracted from an embed listed for its episode."""
    for urls in mirrors.values():
        index = entry.episode_index
        if index < len(urls) and urls[index] == entry.source_embed_url:
            return True
    return False


class EpisodePlaybackUseCase:
    """Foreground playback plus background adjacent-episode warming."""

    def __init__(
        self,
        *,
        extractor: VideoExtractorPort,
        analyzer: _SourceAnalyzer,
        cache: _EpisodeCache,
        gate: _ExtractionGate,
        headers_fn: Callable[[str], dict[str, str]] = lambda _url: {},
        warm_enabled: bool = True,
        warm_delay_seconds: float = 1.0,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._extractor = extractor
        self._analyzer = analyzer
        self._cache = cache
        self._gate = gate
        self._headers_fn = headers_fn
        self._warm_enabled = warm_enabled
        self._warm_delay = warm_delay_seconds
        self._metrics = metrics
        self._selection: PlaybackSelection | None = None
        self._warm_tasks: set[asyncio.Task[list[int]]] = set()

    @property
    def selection(self) -> PlaybackSelection | None:
        return self._selection

    def _require_selection(self) -> PlaybackSelection:
        if self._selection is None:
            raise NoSeasonLoadedError("load a season before playing episodes")
        return self._selection

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def load_season(
        self,
        season_id: str,
        listing: EpisodeListing,
        language: str,
        *,
        source: str | None = None,
    ) -> PlaybackSelection:
        """Analyze all mirrors of *language* and select one.

        Without an explicit *source* the recommended mirror is used. The
        episode cache is cleared when the season, language or mirror differs
        from the current selection; entries restored before any selection
        are kept only for episodes this language still lists.
        """
        analyses = self._analyzer.analyze_all_sources(listing, language)
        if not analyses:
            raise UnknownSourceError(f"no mirrors for language {language!r}")
        if source is not None and source not in analyses:
            raise UnknownSourceError(f"unknown source {source!r}")

        chosen = source or self._analyzer.recommend_best_source(analyses)
        if chosen is None:
            raise UnknownSourceError(f"no usable mirror for language {language!r}")
        self._analyzer.log_report(analyses, language)

        selection = PlaybackSelection(
            season_id=season_id,
            listing=listing,
            language=language,
            source=chosen,
            analyses=analyses,
        )
        self._invalidate_cache(self._selection, selection)
        self._selection = selection
        log.info(
            "season_loaded",
            season_id=season_id,
            language=language,
            source=chosen,
            mirrors=len(analyses),
        )
        return selection

    def _invalidate_cache(
        self, previous: PlaybackSelection | None, current: PlaybackSelection
    ) -> None:
        if previous is None:
            self._cache.retain(
                lambda entry: entry.season_id == current.season_id
                and _is_listed(entry, current.mirrors)
            )
        elif (previous.season_id, previous.language, previous.source) != (
            current.season_id,
            current.language,
            current.source,
        ):
            self._cache.clear()

    def switch_language(self, language: str) -> PlaybackSelection:
        """Select another language; the cache no longer applies."""
        current = self._require_selection()
        return self.load_season(current.season_id, current.listing, language)

    def switch_source(self, source: str) -> PlaybackSelection:
        """Select another mirror; the cache no longer applies."""
        current = self._require_selection()
        if source not in current.mirrors:
            raise UnknownSourceError(f"unknown source {source!r}")
        self._cache.clear()
        current.source = source
        log.info("source_switched", season_id=current.season_id, source=source)
        return current

    # ------------------------------------------------------------------
    # Foreground playback
    # ------------------------------------------------------------------

    async def play(self, index: int) -> PlaybackOutcome:
        """Resolve episode *index* to a playable URL.

        Raises ``ExtractionBusyError`` while another foreground extraction
        is running and ``NoSeasonLoadedError`` without a loaded season.
        """
        selection = self._require_selection()

        cached = self._cache.get(selection.season_id, index)
        if cached is not None:
            log.info("episode_cache_hit", season_id=selection.season_id, index=index)
            result = ExtractionSuccess(
                video_url=cached.video_url,
                strategy="cache",
                headers=self._headers_fn(cached.video_url)
                or self._headers_fn(cached.source_embed_url),
            )
            self.schedule_warm(index)
            return PlaybackOutcome(index=index, result=result, from_cache=True)

        async with self._gate.foreground() as token:
            outcome = await self._play_live(selection, index, token)

        if isinstance(outcome.result, ExtractionSuccess):
            self.schedule_warm(index)
        return outcome

    async def _play_live(
        self, selection: PlaybackSelection, index: int, token: ExtractionToken
    ) -> PlaybackOutcome:
        choice = self._analyzer.best_episode_url(
            index, selection.mirrors, selection.source
        )
        if choice is None:
            raise UnknownSourceError(f"episode {index} is not available")

        result = await self._extractor.extract_video_url(choice.url, token=token)
        match result:
            case ExtractionSuccess(video_url=video_url):
                self._cache.put(selection.season_id, index, video_url, choice.url)
                return PlaybackOutcome(index=index, result=result, source=choice.source)
            case ExtractionFailure() if self._analyzer.is_extraction_error(result):
                retry = await self._try_alternative(
                    selection, index, choice.source, token
                )
                if retry is not None:
                    return retry
        return PlaybackOutcome(index=index, result=result, source=choice.source)

    async def _try_alternative(
        self,
        selection: PlaybackSelection,
        index: int,
        failed_source: str,
        token: ExtractionToken,
    ) -> PlaybackOutcome | None:
        alternative = self._analyzer.find_best_alternative_for_episode(
            index, selection.analyses, failed_source
        )
        if alternative is None:
            log.info("no_alternative_source", index=index, failed_source=failed_source)
            return None

        log.info(
            "trying_alternative_source",
            index=index,
            failed_source=failed_source,
            source=alternative.source_name,
            provider=alternative.provider.value,
        )
        result = await self._extractor.extract_video_url(alternative.url, token=token)
        if isinstance(result, ExtractionSuccess):
            self._cache.put(selection.season_id, index, result.video_url, alternative.url)
        return PlaybackOutcome(
            index=index,
            result=result,
            source=alternative.source_name,
            used_alternative=True,
        )

    # ------------------------------------------------------------------
    # Background warming
    # ------------------------------------------------------------------

    async def warm_adjacent(self, current_index: int) -> list[int]:
        """Extract the previous and next episode into the cache.

        Skipped entirely while a foreground extraction holds the gate.
        Already cached and out-of-range indices are ignored; failures are
        dropped silently. Returns the indices that were cached.
        """
        selection = self._selection
        if selection is None or self._gate.busy:
            return []

        count = selection.episode_count
        targets = [
            i
            for i in (current_index - 1, current_index + 1)
            if 0 <= i < count and self._cache.get(selection.season_id, i) is None
        ]
        if not targets:
            return []

        outcomes = await asyncio.gather(
            *(self._warm_one(selection, i) for i in targets),
            return_exceptions=True,
        )
        warmed = [i for i, ok in zip(targets, outcomes) if ok is True]
        if warmed:
            log.info("adjacent_episodes_warmed", season_id=selection.season_id, indices=warmed)
            if self._metrics is not None:
                self._metrics.record_warm(len(warmed))
        return warmed

    async def _warm_one(self, selection: PlaybackSelection, index: int) -> bool:
        async with self._gate.background() as token:
            if token is None:
                return False
            choice = self._analyzer.best_episode_url(
                index, selection.mirrors, selection.source
            )
            if choice is None:
                return False
            try:
                result = await self._extractor.extract_video_url(choice.url, token=token)
            except Exception:  # noqa: BLE001
                log.debug("warm_extraction_error", index=index, exc_info=True)
                return False
        # Season or mirror may have changed while extracting.
        if self._selection is not selection or selection.source != choice.original_source:
            return False
        if isinstance(result, ExtractionSuccess):
            return self._cache.put(
                selection.season_id, index, result.video_url, choice.url
            ) is not None
        return False

    def schedule_warm(self, current_index: int) -> None:
        """Fire-and-forget :meth:`warm_adjacent` after the warm delay."""
        if not self._warm_enabled:
            return
        task = asyncio.create_task(self._delayed_warm(current_index))
        self._warm_tasks.add(task)
        task.add_done_callback(self._warm_tasks.discard)

    async def _delayed_warm(self, current_index: int) -> list[int]:
        await asyncio.sleep(self._warm_delay)
        try:
            return await self.warm_adjacent(current_index)
        except Exception:  # noqa: BLE001
            log.debug("warm_adjacent_error", index=current_index, exc_info=True)
            return []

    async def aclose(self) -> None:
        """Cancel pending warm tasks."""
        for task in list(self._warm_tasks):
            task.cancel()
        if self._warm_tasks:
            await asyncio.gather(*self._warm_tasks, return_exceptions=True)
        self._warm_tasks.clear()
