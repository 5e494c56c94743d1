"""Mirror (source) reliability analysis.

Pure, offline computation over an episode listing
(``language -> mirror -> [embed_url, ...]``). No I/O.

Ranking everywhere follows the same order: fast provider, then any provider
not known to be slow, then anything.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from animestream.domain.entities.extraction import (
    ExtractionErrorCode,
    ExtractionFailure,
    Provider,
)
from animestream.domain.entities.sources import (
    AlternativeSource,
    EpisodeChoice,
    EpisodeListing,
    EpisodeProvider,
    SourceAnalysis,
)
from animestream.infrastructure.providers.detector import detect_provider

log = structlog.get_logger(__name__)

DEFAULT_FAST_PROVIDERS: tuple[Provider, ...] = (
    Provider.VIDMOLY,
    Provider.SENDVID,
    Provider.VUDEO,
)
DEFAULT_SLOW_PROVIDERS: tuple[Provider, ...] = (Provider.SIBNET,)

_RECOVERABLE_ERROR_RE = re.compile(
    r"timeout|network error|failed to fetch|net::err|404|403|500|"
    r"not found|forbidden|unavailable",
    re.IGNORECASE,
)

_SLOW_PRIORITY = 999


class SourceAnalyzer:
    """Ranks mirrors and per-episode alternatives by provider speed class."""

    def __init__(
        self,
        *,
        fast_providers: Iterable[Provider] = DEFAULT_FAST_PROVIDERS,
        slow_providers: Iterable[Provider] = DEFAULT_SLOW_PROVIDERS,
    ) -> None:
        self._fast: tuple[Provider, ...] = tuple(fast_providers)
        self._slow: frozenset[Provider] = frozenset(slow_providers)

    def is_fast(self, provider: Provider) -> bool:
        return provider in self._fast

    def is_slow(self, provider: Provider) -> bool:
        return provider in self._slow

    # ------------------------------------------------------------------
    # Per-mirror analysis
    # ------------------------------------------------------------------

    def analyze_source(self, episode_urls: Sequence[str]) -> SourceAnalysis:
        """Tally providers of one mirror and pick its modal provider.

        Ties prefer the first episode's provider, then the tied provider
        appearing earliest in the list.
        """
        episodes = tuple(
            EpisodeProvider(index=i, url=url, provider=detect_provider(url))
            for i, url in enumerate(episode_urls)
        )
        if not episodes:
            return SourceAnalysis(main_provider=Provider.UNKNOWN)

        distribution = Counter(ep.provider for ep in episodes)
        top = max(distribution.values())
        tied = {p for p, count in distribution.items() if count == top}

        first = episodes[0].provider
        if first in tied:
            main = first
        else:
            main = next(ep.provider for ep in episodes if ep.provider in tied)

        return SourceAnalysis(
            main_provider=main,
            distribution=dict(distribution),
            is_mixed=len(distribution) > 1,
            is_slow=self.is_slow(main),
            episodes=episodes,
        )

    def analyze_all_sources(
        self, listing: EpisodeListing, language: str
    ) -> dict[str, SourceAnalysis]:
        """Analyze every mirror of *language*; unknown languages yield ``{}``."""
        mirrors = listing.get(language) or {}
        return {name: self.analyze_source(urls) for name, urls in mirrors.items()}

    def recommend_best_source(
        self, analyses: Mapping[str, SourceAnalysis]
    ) -> str | None:
        """Pick the mirror to use for a whole season.

        Preference: pure fast mirror > mixed fast mirror > any non-slow
        mirror > the first mirror.
        """
        if not analyses:
            return None

        for name, analysis in analyses.items():
            if self.is_fast(analysis.main_provider) and not analysis.is_mixed:
                return name
        for name, analysis in analyses.items():
            if self.is_fast(analysis.main_provider):
                return name
        for name, analysis in analyses.items():
            if not analysis.is_slow:
                return name
        return next(iter(analyses))

    # ------------------------------------------------------------------
    # Per-episode alternatives
    # ------------------------------------------------------------------

    def find_best_alternative_for_episode(
        self,
        index: int,
        analyses: Mapping[str, SourceAnalysis],
        exclude_source: str | None,
    ) -> AlternativeSource | None:
        """Best other mirror serving episode *index* (fast > non-slow > any)."""
        candidates: list[AlternativeSource] = []
        for name, analysis in analyses.items():
            if name == exclude_source:
                continue
            if not 0 <= index < len(analysis.episodes):
                continue
            episode = analysis.episodes[index]
            if not episode.url:
                continue
            candidates.append(
                AlternativeSource(
                    source_name=name,
                    provider=episode.provider,
                    url=episode.url,
                    is_fast=self.is_fast(episode.provider),
                    is_slow=self.is_slow(episode.provider),
                )
            )

        for predicate in (
            lambda c: c.is_fast,
            lambda c: not c.is_slow,
            lambda c: True,
        ):
            for candidate in candidates:
                if predicate(candidate):
                    return candidate
        return None

    def _priority(self, provider: Provider) -> int:
        if self._fast and provider == self._fast[0]:
            return 1
        if self.is_fast(provider):
            return 2
        if self.is_slow(provider):
            return _SLOW_PRIORITY
        return 3

    def best_episode_url(
        self,
        index: int,
        mirrors: Mapping[str, Sequence[str]],
        current_source: str,
    ) -> EpisodeChoice | None:
        """Choose the mirror to extract episode *index* from.

        Every mirror holding the episode is ranked by provider priority;
        ties keep *current_source*, then listing order. Returns None when no
        mirror has the episode.
        """
        current_urls = mirrors.get(current_source) or ()
        current_url = current_urls[index] if 0 <= index < len(current_urls) else None
        current_provider = detect_provider(current_url) if current_url else None

        options: list[tuple[int, int, int, str, str, Provider]] = []
        for order, (name, urls) in enumerate(mirrors.items()):
            if not 0 <= index < len(urls) or not urls[index]:
                continue
            url = urls[index]
            provider = detect_provider(url)
            is_current = 0 if name == current_source else 1
            options.append(
                (self._priority(provider), is_current, order, name, url, provider)
            )
        if not options:
            return None

        _, _, _, name, url, provider = min(options)
        choice = EpisodeChoice(
            url=url,
            source=name,
            provider=provider,
            is_alternative=name != current_source,
            original_source=current_source,
            original_provider=current_provider,
        )
        if choice.is_alternative:
            log.info(
                "episode_alternative_selected",
                index=index,
                source=name,
                provider=provider.value,
                original_source=current_source,
                original_provider=current_provider.value if current_provider else None,
            )
        return choice

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def generate_report(
        self, analyses: Mapping[str, SourceAnalysis]
    ) -> dict[str, Any]:
        """JSON-serializable summary of all mirrors plus the recommendation."""
        sources: list[dict[str, Any]] = []
        for name, analysis in analyses.items():
            sources.append(
                {
                    "source": name,
                    "main_provider": analysis.main_provider.value,
                    "is_slow": analysis.is_slow,
                    "is_mixed": analysis.is_mixed,
                    "is_fast": self.is_fast(analysis.main_provider),
                    "total_episodes": analysis.total_episodes,
                    "distribution": {
                        p.value: n for p, n in analysis.distribution.items()
                    },
                }
            )
        return {
            "sources": sources,
            "recommended": self.recommend_best_source(analyses),
        }

    def log_report(
        self, analyses: Mapping[str, SourceAnalysis], language: str
    ) -> dict[str, Any]:
        report = self.generate_report(analyses)
        for entry in report["sources"]:
            log.info("source_analysis", language=language, **entry)
        log.info(
            "source_recommended",
            language=language,
            recommended=report["recommended"],
        )
        return report

    # ------------------------------------------------------------------
    # Error triage
    # ------------------------------------------------------------------

    @staticmethod
    def is_extraction_error(error: ExtractionFailure | str | None) -> bool:
        """Whether switching to another mirror may fix *error*."""
        if error is None:
            return False
        if isinstance(error, ExtractionFailure):
            if error.error_code is not ExtractionErrorCode.UNKNOWN_ERROR:
                return True
            error = error.raw_error
        return bool(_RECOVERABLE_ERROR_RE.search(error))
