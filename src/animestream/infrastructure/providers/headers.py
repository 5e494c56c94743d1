"""Per-provider request header policy.

Some providers reject requests without a matching ``Referer``/``Origin``.
The policy is a static lookup keyed by the detected provider and is applied
to every request of an extraction session via a Playwright route handler.
"""

from __future__ import annotations

import structlog
from playwright.async_api import Route

from animestream.domain.entities.extraction import Provider

from .detector import detect_provider

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_HEADER_POLICY: dict[Provider, dict[str, str]] = {
    Provider.VIDMOLY: {
        "Referer": "https://anime-sama.fr/",
        "User-Agent": DEFAULT_USER_AGENT,
    },
    Provider.SIBNET: {
        "Referer": "https://video.sibnet.ru/",
        "Origin": "https://video.sibnet.ru",
        "User-Agent": DEFAULT_USER_AGENT,
    },
    Provider.SENDVID: {
        "Referer": "https://sendvid.com/",
        "User-Agent": DEFAULT_USER_AGENT,
    },
}


def headers_for(url: str | None) -> dict[str, str]:
    """Return the headers to attach to requests for *url*.

    Empty for providers without a policy. A fresh dict is returned on
    every call.
    """
    return dict(_HEADER_POLICY.get(detect_provider(url), {}))


async def apply_header_policy(route: Route) -> None:
    """Route handler merging the provider policy into outgoing requests.

    Requests for hosts without a policy continue untouched. A failure while
    merging degrades to an unmodified continue.
    """
    request = route.request
    policy = headers_for(request.url)
    if not policy:
        await route.continue_()
        return
    try:
        merged = await request.all_headers()
        merged.update({k.lower(): v for k, v in policy.items()})
    except Exception:  # noqa: BLE001
        log.debug("header_policy_merge_failed", url=request.url[:120], exc_info=True)
        await route.continue_()
        return
    await route.continue_(headers=merged)
