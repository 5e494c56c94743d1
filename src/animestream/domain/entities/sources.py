"""Domain entities for mirror (source) reliability analysis."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias

from .extraction import Provider

# language -> mirror name -> ordered episode embed URLs
EpisodeListing: TypeAlias = Mapping[str, Mapping[str, Sequence[str]]]


@dataclass(frozen=True)
class EpisodeProvider:
    """Provider detected for one episode of a mirror."""

    index: int
    url: str
    provider: Provider


@dataclass(frozen=True)
class SourceAnalysis:
    """Provider make-up of a single mirror."""

    main_provider: Provider
    distribution: dict[Provider, int] = field(default_factory=dict)
    is_mixed: bool = False
    is_slow: bool = False
    episodes: tuple[EpisodeProvider, ...] = ()

    @property
    def total_episodes(self) -> int:
        return len(self.episodes)


@dataclass(frozen=True)
class AlternativeSource:
    """Another mirror able to serve a given episode."""

    source_name: str
    provider: Provider
    url: str
    is_fast: bool
    is_slow: bool


@dataclass(frozen=True)
class EpisodeChoice:
    """Mirror picked for one episode before extraction."""

    url: str
    source: str
    provider: Provider
    is_alternative: bool
    original_source: str
    original_provider: Provider | None = None
