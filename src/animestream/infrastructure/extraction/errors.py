"""Failure classification for extraction attempts."""

from __future__ import annotations

from animestream.domain.entities.extraction import (
    ExtractionErrorCode,
    ExtractionFailure,
)

_UNREACHABLE_MARKERS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_TIMED_OUT",
    "ERR_INTERNET_DISCONNECTED",
    "ERR_ADDRESS_UNREACHABLE",
)

_ABORTED_MARKER = "ERR_ABORTED"

NOT_FOUND_STATUSES = frozenset({404, 410, 500, 503})

USER_MESSAGES: dict[ExtractionErrorCode, str] = {
    ExtractionErrorCode.SOURCE_UNAVAILABLE: (
        "This video source is unreachable right now. Try another source."
    ),
    ExtractionErrorCode.PAGE_NOT_FOUND: (
        "The video page no longer exists on this source. Try another source."
    ),
    ExtractionErrorCode.NO_VIDEO_FOUND: (
        "No playable video was found. The host may use a protected player; "
        "try another source."
    ),
    ExtractionErrorCode.TIMEOUT: (
        "The video host took too long to respond. Try again or pick another source."
    ),
    ExtractionErrorCode.NETWORK_ERROR: (
        "A network error interrupted loading. Check your connection or try "
        "another source."
    ),
    ExtractionErrorCode.UNKNOWN_ERROR: (
        "Something went wrong while loading the video. Try another source."
    ),
}


def failure(code: ExtractionErrorCode, raw_error: str) -> ExtractionFailure:
    return ExtractionFailure(
        error_code=code,
        raw_error=raw_error,
        user_message=USER_MESSAGES[code],
    )


def is_aborted_navigation(exc: BaseException) -> bool:
    """Aborted navigations come from benign embed redirects and are tolerated."""
    return _ABORTED_MARKER in str(exc)


def classify_navigation_error(exc: BaseException) -> ExtractionFailure | None:
    """Return SOURCE_UNAVAILABLE for unreachable hosts, None otherwise."""
    message = str(exc)
    if any(marker in message for marker in _UNREACHABLE_MARKERS):
        return failure(ExtractionErrorCode.SOURCE_UNAVAILABLE, message)
    return None


def classify_status(status: int | None) -> ExtractionFailure | None:
    """Return PAGE_NOT_FOUND for dead main documents, None otherwise."""
    if status is not None and status in NOT_FOUND_STATUSES:
        return failure(ExtractionErrorCode.PAGE_NOT_FOUND, f"HTTP {status}")
    return None


def classify_exception(exc: BaseException) -> ExtractionFailure:
    """Map an uncaught attempt-level exception onto the taxonomy."""
    navigation = classify_navigation_error(exc)
    if navigation is not None:
        return navigation
    message = str(exc) or type(exc).__name__
    if "timeout" in message.lower() or isinstance(exc, TimeoutError):
        return failure(ExtractionErrorCode.TIMEOUT, message)
    if "net::" in message:
        return failure(ExtractionErrorCode.NETWORK_ERROR, message)
    return failure(ExtractionErrorCode.UNKNOWN_ERROR, message)


def no_video_found(url: str) -> ExtractionFailure:
    return failure(
        ExtractionErrorCode.NO_VIDEO_FOUND,
        f"no video candidate observed for {url}",
    )
