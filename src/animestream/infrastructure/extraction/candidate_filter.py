"""Classify observed URLs as plausible media streams.

Checks run in a fixed order and exclusion short-circuits:

1. exclusion (analytics/ads hosts, non-video extensions, player libraries)
2. explicit video extension
3. contextual match (video-area path segment AND media indicator token)
4. provider-specific rules (tightened patterns per known provider)

Extension and fragment checks operate on the query-stripped path so that
``player.js?v=2`` is still recognised as a script. Neither function raises.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

import structlog

from animestream.domain.entities.extraction import Provider
from animestream.infrastructure.providers.detector import detect_provider

log = structlog.get_logger(__name__)

_EXCLUDED_HOST_MARKERS: tuple[str, ...] = (
    "google-analytics",
    "googletagmanager",
    "doubleclick",
    "analytics",
    "trackers",
    "ads",
    "pixel",
    "beacon",
    "metrics",
)

_EXCLUDED_URL_MARKERS: tuple[str, ...] = ("facebook.com/tr",)

_NON_VIDEO_EXTENSIONS: tuple[str, ...] = (
    ".js", ".css", ".json", ".xml", ".html", ".htm",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp",
    ".map", ".txt", ".pdf", ".zip", ".gz",
)  # fmt: skip

_PLAYER_FRAGMENTS: tuple[str, ...] = (
    "jwplayer",
    "player.js",
    "video.js",
    "hls.js",
    "plyr.js",
    "/js/",
    "/javascript/",
    "/scripts/",
)

_VIDEO_EXTENSION_RE = re.compile(r"\.(?:mp4|m3u8|ts|webm|mkv|avi|mov|flv|mpd)$")
_VIDEO_AREA_RE = re.compile(r"/(?:video|videos|media|stream|embed)/")
_MEDIA_TOKEN_RE = re.compile(
    r"\b(?:mp4|m3u8|ts|webm|playlist|manifest|chunk|segment)\b"
)
_PLAYABLE_RE = re.compile(r"\.(?:mp4|m3u8)")
_SIBNET_VIDEO_RE = re.compile(r"video.*\.(?:mp4|m3u8)")
_SIBNET_ID_RE = re.compile(r"/(?:video|vid)\d+")


def _path_of(url: str) -> str:
    return urlsplit(url).path.lower()


def should_exclude(url: str) -> bool:
    """True when *url* is analytics/ads traffic, a non-video asset or a player script."""
    lowered = url.lower()
    parts = urlsplit(lowered)
    host = parts.hostname or ""

    if any(marker in host for marker in _EXCLUDED_HOST_MARKERS):
        return True
    if any(marker in lowered for marker in _EXCLUDED_URL_MARKERS):
        return True

    path = parts.path
    if path.endswith(_NON_VIDEO_EXTENSIONS):
        return True
    return any(fragment in path for fragment in _PLAYER_FRAGMENTS)


def _matches_provider_rule(url: str, lowered: str) -> bool:
    provider = detect_provider(url)
    if provider in (Provider.VIDMOLY, Provider.SENDVID):
        return bool(_PLAYABLE_RE.search(lowered))
    if provider is Provider.SIBNET:
        return bool(
            _SIBNET_VIDEO_RE.search(lowered) or _SIBNET_ID_RE.search(lowered)
        )
    return False


def is_video_candidate(url: str | None) -> bool:
    """Return True when *url* plausibly points at a media stream or segment."""
    if not url or not isinstance(url, str):
        return False
    try:
        if should_exclude(url):
            return False

        lowered = url.lower()
        path = _path_of(url)

        if _VIDEO_EXTENSION_RE.search(path):
            return True
        if _VIDEO_AREA_RE.search(lowered) and _MEDIA_TOKEN_RE.search(lowered):
            return True
        return _matches_provider_rule(url, lowered)
    except Exception:  # noqa: BLE001
        log.debug("candidate_filter_error", url=url[:120], exc_info=True)
        return False
