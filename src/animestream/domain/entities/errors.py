"""Domain exceptions."""

from __future__ import annotations


class AnimeStreamError(Exception):
    """Base class for all application errors."""


class ExtractionBusyError(AnimeStreamError):
    """Raised when a foreground extraction is already in flight."""


class NoSeasonLoadedError(AnimeStreamError):
    """Raised when playback is requested before a season listing is loaded."""


class UnknownSourceError(AnimeStreamError):
    """Raised when a language or mirror is not part of the loaded listing."""
