"""Domain entities for video URL extraction.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias


class Provider(str, Enum):
    """Known embed hosting providers (``UNKNOWN`` for everything else)."""

    SIBNET = "sibnet"
    VIDMOLY = "vidmoly"
    SENDVID = "sendvid"
    VUDEO = "vudeo"
    GOUNLIMITED = "gounlimited"
    UNKNOWN = "unknown"


class ExtractionErrorCode(str, Enum):
    """Closed failure taxonomy of an extraction attempt."""

    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    NO_VIDEO_FOUND = "NO_VIDEO_FOUND"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class ExtractionSuccess:
    """A direct media URL discovered behind an embed page.

    ``note`` is set when the URL came from the last-resort ``<video>`` read
    and may not be directly downloadable (e.g. a blob-backed stream).
    """

    video_url: str
    note: str | None = None
    strategy: str = ""  # "network", "dom", "hooks", "fallback", "cache"
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: int = 0


@dataclass(frozen=True)
class ExtractionFailure:
    """A classified extraction failure.

    ``user_message`` is the human-facing suggestion; ``raw_error`` keeps the
    original diagnostic text for logs.
    """

    error_code: ExtractionErrorCode
    raw_error: str
    user_message: str


ExtractionResult: TypeAlias = ExtractionSuccess | ExtractionFailure


@dataclass(frozen=True)
class CacheEntry:
    """A previously extracted media URL for one episode."""

    season_id: str
    episode_index: int
    video_url: str
    source_embed_url: str
    timestamp: float


@dataclass(frozen=True)
class ExtractionToken:
    """Ownership token for one extraction slot.

    ``kind`` is ``"foreground"`` for user-initiated playback and
    ``"background"`` for adjacent-episode warming.
    """

    token_id: str
    kind: str
