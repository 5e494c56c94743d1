from __future__ import annotations

from .load import load_config
from .schema import (
    AppConfig,
    EnvOverrides,
    EpisodeCacheConfig,
    ExtractionConfig,
    SourcesConfig,
)

__all__ = [
    "AppConfig",
    "EnvOverrides",
    "EpisodeCacheConfig",
    "ExtractionConfig",
    "SourcesConfig",
    "load_config",
]
