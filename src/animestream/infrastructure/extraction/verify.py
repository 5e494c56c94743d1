"""HEAD-check verification for extracted video URLs."""

from __future__ import annotations

import httpx
import structlog

from animestream.infrastructure.providers.detector import detect_provider
from animestream.infrastructure.providers.headers import headers_for

log = structlog.get_logger(__name__)

_PLAYABLE_STATUSES = frozenset({200, 206})


async def verify_video_url(
    http_client: httpx.AsyncClient,
    url: str,
    *,
    embed_url: str | None = None,
    timeout: float = 8.0,
) -> bool:
    """HEAD-check *url* with the provider's header policy.

    Returns ``True`` when the media host answers 200 or 206 (byte-range
    servers). Blob URLs are never reachable from outside the page and
    always fail. The policy of *embed_url* is used when the media host
    itself has none.
    """
    if url.startswith("blob:"):
        return False

    headers = headers_for(url) or headers_for(embed_url)
    provider = detect_provider(embed_url or url).value
    try:
        resp = await http_client.head(
            url,
            headers=headers,
            follow_redirects=True,
            timeout=timeout,
        )
    except httpx.HTTPError:
        log.warning("video_verify_error", provider=provider, url=url[:120])
        return False

    if resp.status_code in _PLAYABLE_STATUSES:
        return True
    log.warning(
        "video_head_failed",
        provider=provider,
        status=resp.status_code,
        url=url[:120],
    )
    return False
