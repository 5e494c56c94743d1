"""Tests for the per-provider header policy and its route handler."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from animestream.infrastructure.providers.headers import (
    DEFAULT_USER_AGENT,
    apply_header_policy,
    headers_for,
)


def _route(url: str, headers: dict[str, str] | None = None) -> AsyncMock:
    route = AsyncMock()
    route.request = MagicMock()
    route.request.url = url
    route.request.all_headers = AsyncMock(return_value=dict(headers or {}))
    return route


class TestHeadersFor:
    def test_vidmoly(self) -> None:
        assert headers_for("https://vidmoly.net/embed-x.html") == {
            "Referer": "https://anime-sama.fr/",
            "User-Agent": DEFAULT_USER_AGENT,
        }

    def test_sibnet_has_origin(self) -> None:
        headers = headers_for("https://video.sibnet.ru/shell.php?videoid=1")
        assert headers["Referer"] == "https://video.sibnet.ru/"
        assert headers["Origin"] == "https://video.sibnet.ru"

    def test_sendvid(self) -> None:
        assert headers_for("https://sendvid.com/embed/x")["Referer"] == (
            "https://sendvid.com/"
        )

    def test_unmatched_host_empty(self) -> None:
        assert headers_for("https://example.org/video.mp4") == {}
        assert headers_for(None) == {}

    def test_returns_fresh_copy(self) -> None:
        first = headers_for("https://sendvid.com/embed/x")
        first["Referer"] = "https://evil.example/"
        assert headers_for("https://sendvid.com/embed/x")["Referer"] == (
            "https://sendvid.com/"
        )


class TestApplyHeaderPolicy:
    async def test_merges_policy_headers(self) -> None:
        route = _route(
            "https://video.sibnet.ru/v/abc.mp4",
            {"accept": "*/*", "referer": "https://other.example/"},
        )
        await apply_header_policy(route)
        route.continue_.assert_awaited_once()
        headers = route.continue_.await_args.kwargs["headers"]
        assert headers["accept"] == "*/*"
        assert headers["referer"] == "https://video.sibnet.ru/"
        assert headers["origin"] == "https://video.sibnet.ru"
        assert headers["user-agent"] == DEFAULT_USER_AGENT

    async def test_unmatched_host_passes_through(self) -> None:
        route = _route("https://cdn.example.org/app.js", {"accept": "*/*"})
        await apply_header_policy(route)
        route.continue_.assert_awaited_once_with()
        route.request.all_headers.assert_not_awaited()

    async def test_merge_failure_continues_unmodified(self) -> None:
        route = _route("https://vidmoly.net/embed-x.html")
        route.request.all_headers = AsyncMock(side_effect=RuntimeError("gone"))
        await apply_header_policy(route)
        route.continue_.assert_awaited_once_with()
