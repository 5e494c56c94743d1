"""Tests for extraction failure classification."""

from __future__ import annotations

import asyncio

import pytest

from animestream.domain.entities.extraction import ExtractionErrorCode
from animestream.infrastructure.extraction.errors import (
    USER_MESSAGES,
    classify_exception,
    classify_navigation_error,
    classify_status,
    failure,
    is_aborted_navigation,
    no_video_found,
)


class TestUserMessages:
    def test_every_code_has_a_message(self) -> None:
        assert set(USER_MESSAGES) == set(ExtractionErrorCode)

    def test_failure_attaches_message(self) -> None:
        result = failure(ExtractionErrorCode.TIMEOUT, "Timeout 15000ms exceeded.")
        assert result.raw_error == "Timeout 15000ms exceeded."
        assert result.user_message == USER_MESSAGES[ExtractionErrorCode.TIMEOUT]


class TestClassifyStatus:
    @pytest.mark.parametrize("status", [404, 410, 500, 503])
    def test_not_found_statuses(self, status: int) -> None:
        result = classify_status(status)
        assert result is not None
        assert result.error_code is ExtractionErrorCode.PAGE_NOT_FOUND
        assert str(status) in result.raw_error

    @pytest.mark.parametrize("status", [None, 200, 204, 301, 403])
    def test_other_statuses_pass(self, status: int | None) -> None:
        assert classify_status(status) is None


class TestNavigationErrors:
    @pytest.mark.parametrize(
        "marker",
        [
            "ERR_NAME_NOT_RESOLVED",
            "ERR_CONNECTION_REFUSED",
            "ERR_CONNECTION_TIMED_OUT",
            "ERR_INTERNET_DISCONNECTED",
            "ERR_ADDRESS_UNREACHABLE",
        ],
    )
    def test_unreachable_markers(self, marker: str) -> None:
        result = classify_navigation_error(Exception(f"page.goto: net::{marker}"))
        assert result is not None
        assert result.error_code is ExtractionErrorCode.SOURCE_UNAVAILABLE

    def test_other_errors_unclassified(self) -> None:
        assert classify_navigation_error(Exception("net::ERR_ABORTED")) is None

    def test_aborted(self) -> None:
        assert is_aborted_navigation(Exception("net::ERR_ABORTED at https://x"))
        assert not is_aborted_navigation(Exception("net::ERR_FAILED"))


class TestClassifyException:
    def test_unreachable_wins_over_timeout(self) -> None:
        result = classify_exception(Exception("net::ERR_CONNECTION_TIMED_OUT"))
        assert result.error_code is ExtractionErrorCode.SOURCE_UNAVAILABLE

    def test_timeout_message(self) -> None:
        result = classify_exception(Exception("Timeout 15000ms exceeded."))
        assert result.error_code is ExtractionErrorCode.TIMEOUT

    def test_timeout_error_type(self) -> None:
        result = classify_exception(asyncio.TimeoutError())
        assert result.error_code is ExtractionErrorCode.TIMEOUT
        assert result.raw_error == "TimeoutError"

    def test_network_error(self) -> None:
        result = classify_exception(Exception("net::ERR_SSL_PROTOCOL_ERROR"))
        assert result.error_code is ExtractionErrorCode.NETWORK_ERROR

    def test_unknown(self) -> None:
        result = classify_exception(ValueError("bad"))
        assert result.error_code is ExtractionErrorCode.UNKNOWN_ERROR
        assert result.raw_error == "bad"


def test_no_video_found_mentions_url() -> None:
    result = no_video_found("https://vidmoly.net/embed-x.html")
    assert result.error_code is ExtractionErrorCode.NO_VIDEO_FOUND
    assert "vidmoly.net/embed-x.html" in result.raw_error
