from .errors import (
    AnimeStreamError,
    ExtractionBusyError,
    NoSeasonLoadedError,
    UnknownSourceError,
)
from .extraction import (
    CacheEntry,
    ExtractionErrorCode,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    ExtractionToken,
    Provider,
)
from .sources import (
    AlternativeSource,
    EpisodeChoice,
    EpisodeListing,
    EpisodeProvider,
    SourceAnalysis,
)

__all__ = [
    "AlternativeSource",
    "AnimeStreamError",
    "CacheEntry",
    "EpisodeChoice",
    "EpisodeListing",
    "EpisodeProvider",
    "ExtractionBusyError",
    "ExtractionErrorCode",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionSuccess",
    "ExtractionToken",
    "NoSeasonLoadedError",
    "Provider",
    "SourceAnalysis",
    "UnknownSourceError",
]
