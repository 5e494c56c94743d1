"""Tests for the video candidate filter."""

from __future__ import annotations

import pytest

from animestream.infrastructure.extraction.candidate_filter import (
    is_video_candidate,
    should_exclude,
)


class TestShouldExclude:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.google-analytics.com/collect?v=1",
            "https://www.googletagmanager.com/gtm.js?id=1",
            "https://stats.doubleclick.net/pixel",
            "https://www.facebook.com/tr?id=1&ev=PageView",
            "https://pixel.example.com/p.gif",
        ],
    )
    def test_tracking_hosts(self, url: str) -> None:
        assert should_exclude(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/video/player.js?v=3",
            "https://cdn.example.com/assets/video.css",
            "https://cdn.example.com/video/poster.png",
            "https://cdn.example.com/fonts/video.woff2",
            "https://cdn.example.com/videos/archive.zip",
        ],
    )
    def test_non_video_extensions_ignore_query(self, url: str) -> None:
        assert should_exclude(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/jwplayer/8.0/provider.hlsjs",
            "https://cdn.example.com/libs/hls.js/latest",
            "https://cdn.example.com/static/js/video-loader",
        ],
    )
    def test_player_libraries(self, url: str) -> None:
        assert should_exclude(url)

    def test_plain_media_not_excluded(self) -> None:
        assert not should_exclude("https://cdn.example.com/hls/master.m3u8")


class TestIsVideoCandidate:
    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/video.js",
            "https://cdn.example.com/video/style.css",
            "https://cdn.example.com/video/thumb.png",
            "https://cdn.example.com/video/font.woff2",
        ],
    )
    def test_rejects_assets_containing_video(self, url: str) -> None:
        assert not is_video_candidate(url)

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/v.mp4",
            "https://cdn.example.com/a/b/c/1080p/file.mp4?token=abc&expires=1",
            "https://edge-12.example.net/hls/xyz/master.m3u8",
            "https://edge.example.net/segment/000123.ts",
            "https://edge.example.net/dash/manifest.mpd",
            "https://edge.example.net/clip.webm#t=10",
        ],
    )
    def test_accepts_video_extensions(self, url: str) -> None:
        assert is_video_candidate(url)

    def test_contextual_match(self) -> None:
        assert is_video_candidate("https://cdn.example.com/stream/playlist?id=9")

    def test_contextual_needs_both_parts(self) -> None:
        assert not is_video_candidate("https://cdn.example.com/stream/info?id=9")
        assert not is_video_candidate("https://cdn.example.com/api/playlist?id=9")

    def test_vidmoly_requires_explicit_extension(self) -> None:
        assert is_video_candidate("https://box.vidmoly.net/hls/,abc,.urlset/index.m3u8?t=1")
        assert not is_video_candidate("https://vidmoly.net/dl?op=download")

    def test_sibnet_numeric_media_id(self) -> None:
        assert is_video_candidate("https://video.sibnet.ru/v/4f2a/video4815162")
        assert not is_video_candidate("https://video.sibnet.ru/shell.php?videoid=1")

    @pytest.mark.parametrize("url", [None, "", "::::", "http://[broken"])
    def test_never_raises(self, url: str | None) -> None:
        assert is_video_candidate(url) is False
