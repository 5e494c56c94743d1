"""Provider detection from embed URLs.

A fixed, ordered table of hostname patterns maps a URL onto a known
:class:`Provider`. The first matching row wins; anything else is
``Provider.UNKNOWN``. Detection never raises.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from animestream.domain.entities.extraction import Provider

_PROVIDER_PATTERNS: tuple[tuple[Provider, re.Pattern[str]], ...] = (
    (Provider.SIBNET, re.compile(r"sibnet\.ru", re.IGNORECASE)),
    (Provider.VIDMOLY, re.compile(r"vidmoly\.(?:to|net)", re.IGNORECASE)),
    (Provider.SENDVID, re.compile(r"sendvid\.com", re.IGNORECASE)),
    (Provider.VUDEO, re.compile(r"vudeo\.net", re.IGNORECASE)),
    (Provider.GOUNLIMITED, re.compile(r"gounlimited\.to", re.IGNORECASE)),
)

# Cosmetic host aliases rewritten before navigation.
_HOST_ALIASES: dict[str, str] = {
    "vidmoly.to": "vidmoly.net",
}


def detect_provider(url: str | None) -> Provider:
    """Return the provider serving *url*, ``Provider.UNKNOWN`` if none matches.

    Empty, ``None`` and non-string input are accepted and map to unknown.
    """
    if not url or not isinstance(url, str):
        return Provider.UNKNOWN
    for provider, pattern in _PROVIDER_PATTERNS:
        if pattern.search(url):
            return provider
    return Provider.UNKNOWN


def correct_embed_url(url: str) -> str:
    """Rewrite known legacy host aliases (e.g. ``vidmoly.to`` -> ``vidmoly.net``).

    Only the hostname is touched; path and query are kept verbatim.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    host = (parsed.hostname or "").lower()
    for alias, canonical in _HOST_ALIASES.items():
        if host == alias or host.endswith("." + alias):
            new_host = host[: len(host) - len(alias)] + canonical
            netloc = parsed.netloc.lower().replace(host, new_host, 1)
            return parsed._replace(netloc=netloc).geturl()
    return url
