"""Tests for the extraction race engine (fake browsing sessions)."""

from __future__ import annotations

from unittest.mock import AsyncMock, call

from animestream.domain.entities.extraction import (
    ExtractionErrorCode,
    ExtractionFailure,
    ExtractionSuccess,
    ExtractionToken,
)
from animestream.infrastructure.config.schema import ExtractionConfig
from animestream.infrastructure.extraction.engine import (
    BLOB_NOTE,
    UNVERIFIED_NOTE,
    VideoExtractor,
)
from animestream.infrastructure.extraction.instrumentation import (
    DEFAULT_INSTRUMENTATION,
)
from animestream.infrastructure.metrics import MetricsCollector

EMBED = "https://vidmoly.net/embed-abc.html"
MP4 = "https://cdn.example.com/media/1080p/file.mp4"
M3U8 = "https://edge.example.net/hls/master.m3u8"


def _extractor(factory, config: ExtractionConfig, **kwargs) -> VideoExtractor:
    return VideoExtractor(factory, config, **kwargs)


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------


class TestNavigation:
    async def test_legacy_alias_rewritten_before_navigation(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(dom=MP4)
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(
            "https://vidmoly.to/embed-abc.html"
        )

        assert session.navigated == ["https://vidmoly.net/embed-abc.html"]
        assert isinstance(result, ExtractionSuccess)

    async def test_404_is_page_not_found_and_session_closed(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(status=404, dom=MP4)
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionFailure)
        assert result.error_code is ExtractionErrorCode.PAGE_NOT_FOUND
        assert result.user_message != result.raw_error
        assert session.close_calls == 1
        assert session.callbacks == []
        assert factory.active == 0

    async def test_server_error_is_page_not_found(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(make_session(status=503))
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.error_code is ExtractionErrorCode.PAGE_NOT_FOUND

    async def test_dns_failure_is_source_unavailable(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            navigate_error=Exception("net::ERR_NAME_NOT_RESOLVED at " + EMBED)
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert result.error_code is ExtractionErrorCode.SOURCE_UNAVAILABLE
        assert "ERR_NAME_NOT_RESOLVED" in result.raw_error
        assert session.close_calls == 1

    async def test_connection_timed_out_is_source_unavailable(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(
            make_session(navigate_error=Exception("net::ERR_CONNECTION_TIMED_OUT"))
        )
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.error_code is ExtractionErrorCode.SOURCE_UNAVAILABLE

    async def test_aborted_navigation_is_tolerated(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            navigate_error=Exception("net::ERR_ABORTED; maybe frame was detached?"),
            dom=MP4,
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionSuccess)
        assert result.video_url == MP4

    async def test_navigation_timeout_is_timeout(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(
            make_session(navigate_error=Exception("Timeout 1000ms exceeded."))
        )
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.error_code is ExtractionErrorCode.TIMEOUT

    async def test_other_net_error_is_network_error(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(
            make_session(navigate_error=Exception("net::ERR_SSL_PROTOCOL_ERROR"))
        )
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.error_code is ExtractionErrorCode.NETWORK_ERROR

    async def test_unexpected_error_is_unknown_and_closed(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(navigate_error=RuntimeError("boom"))
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert result.error_code is ExtractionErrorCode.UNKNOWN_ERROR
        assert session.close_calls == 1

    async def test_session_creation_failure_is_classified(
        self, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(
            enter_error=RuntimeError("Executable doesn't exist")
        )
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert isinstance(result, ExtractionFailure)
        assert result.error_code is ExtractionErrorCode.UNKNOWN_ERROR

    async def test_instrumentation_installed_before_navigation(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(dom=MP4)
        factory = make_session_factory(session)
        await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert session.init_scripts == [DEFAULT_INSTRUMENTATION.installer]


# ------------------------------------------------------------------
# Race
# ------------------------------------------------------------------


class TestRace:
    async def test_network_strategy_wins(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            requests=(
                "https://www.googletagmanager.com/gtm.js?id=1",
                "https://cdn.example.com/player/jwplayer.js",
                M3U8,
            ),
            dom_delay=0.1,
            hook_delay=0.1,
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionSuccess)
        assert result.video_url == M3U8
        assert result.strategy == "network"
        assert result.headers["Referer"] == "https://anime-sama.fr/"

    async def test_dom_strategy_wins(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(make_session(dom=MP4))
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.strategy == "dom"
        assert result.video_url == MP4

    async def test_hook_strategy_wins(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(
            make_session(hook={"type": "xhr", "url": M3U8})
        )
        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)
        assert result.strategy == "hooks"
        assert result.video_url == M3U8

    async def test_two_resolutions_commit_exactly_one(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(dom=MP4, hook={"type": "fetch", "url": M3U8})
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionSuccess)
        assert result.video_url in {MP4, M3U8}
        assert session.close_calls == 1

    async def test_failing_strategy_does_not_fail_race(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            dom=RuntimeError("Execution context was destroyed"),
            hook={"type": "fetch", "url": MP4},
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionSuccess)
        assert result.strategy == "hooks"

    async def test_non_candidate_dom_result_is_ignored(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            dom="https://cdn.example.com/video/poster.png",
            hook={"type": "xhr", "url": M3U8},
            hook_delay=0.05,
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert result.video_url == M3U8

    async def test_slow_strategy_cut_by_its_timeout(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        # DOM would answer after its deadline; nothing else finds anything.
        session = make_session(dom=MP4, dom_delay=1.0)
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionFailure)
        assert result.error_code is ExtractionErrorCode.NO_VIDEO_FOUND


# ------------------------------------------------------------------
# Fallback
# ------------------------------------------------------------------


class TestFallback:
    async def test_blob_video_element_returns_noted_success(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            final={"src": "blob:https://vidmoly.net/5e1c", "currentSrc": None}
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionSuccess)
        assert result.video_url == "blob:https://vidmoly.net/5e1c"
        assert result.note == BLOB_NOTE
        assert result.strategy == "fallback"
        assert session.close_calls == 1

    async def test_current_src_used_when_src_empty(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session(
            final={"src": None, "currentSrc": "https://cdn.example.com/play"}
        )
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert result.video_url == "https://cdn.example.com/play"
        assert result.note == UNVERIFIED_NOTE

    async def test_nothing_found(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        session = make_session()
        factory = make_session_factory(session)

        result = await _extractor(factory, fast_extraction_config).extract_video_url(EMBED)

        assert isinstance(result, ExtractionFailure)
        assert result.error_code is ExtractionErrorCode.NO_VIDEO_FOUND
        assert session.close_calls == 1


# ------------------------------------------------------------------
# Batch + metrics
# ------------------------------------------------------------------


class TestBatch:
    async def test_sequential_with_delay(
        self, make_session, make_session_factory
    ) -> None:
        config = ExtractionConfig(
            settle_delay_seconds=0.0,
            network_timeout_seconds=0.2,
            dom_timeout_seconds=0.2,
            hook_timeout_seconds=0.2,
            navigation_timeout_seconds=1.0,
            batch_delay_seconds=0.5,
        )
        factory = make_session_factory(
            make_session(dom=MP4),
            make_session(status=404),
            make_session(hook={"type": "xhr", "url": M3U8}),
        )
        sleep = AsyncMock()
        urls = [
            "https://vidmoly.to/embed-1.html",
            "https://vidmoly.net/embed-2.html",
            "https://sendvid.com/embed/3",
        ]

        results = await _extractor(factory, config, sleep=sleep).extract_multiple_video_urls(
            urls
        )

        assert results == {urls[0]: MP4, urls[1]: None, urls[2]: M3U8}
        assert list(results) == urls
        assert factory.max_active == 1
        assert all(s.close_calls == 1 for s in factory.opened)
        assert sleep.await_args_list.count(call(0.5)) == 2

    async def test_empty_batch(self, make_session_factory, fast_extraction_config) -> None:
        factory = make_session_factory()
        results = await _extractor(
            factory, fast_extraction_config
        ).extract_multiple_video_urls([])
        assert results == {}
        assert factory.opened == []


class TestMetricsAndContext:
    async def test_metrics_recorded(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        metrics = MetricsCollector()
        factory = make_session_factory(make_session(dom=MP4), make_session(status=404))
        extractor = _extractor(factory, fast_extraction_config, metrics=metrics)

        await extractor.extract_video_url(EMBED)
        await extractor.extract_video_url(EMBED)

        snap = metrics.snapshot()
        assert snap["providers"]["vidmoly"]["attempts"] == 2
        assert snap["providers"]["vidmoly"]["successes"] == 1
        assert snap["strategy_wins"] == {"dom": 1}
        assert snap["errors"] == {"PAGE_NOT_FOUND": 1}

    async def test_token_accepted(
        self, make_session, make_session_factory, fast_extraction_config
    ) -> None:
        factory = make_session_factory(make_session(dom=MP4))
        token = ExtractionToken(token_id="abc", kind="foreground")
        result = await _extractor(factory, fast_extraction_config).extract_video_url(
            EMBED, token=token
        )
        assert isinstance(result, ExtractionSuccess)
