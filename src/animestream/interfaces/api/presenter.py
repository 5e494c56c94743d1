"""JSON rendering of extraction and playback results."""

from __future__ import annotations

from typing import Any

from animestream.application.use_cases.episode_playback import PlaybackOutcome
from animestream.domain.entities.extraction import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
)


def render_result(result: ExtractionResult) -> dict[str, Any]:
    """Render a result variant with an explicit ``success`` discriminator."""
    match result:
        case ExtractionSuccess():
            return {
                "success": True,
                "video_url": result.video_url,
                "note": result.note,
                "strategy": result.strategy,
                "headers": result.headers,
                "elapsed_ms": result.elapsed_ms,
            }
        case ExtractionFailure():
            return {
                "success": False,
                "error_code": result.error_code.value,
                "error": result.raw_error,
                "message": result.user_message,
            }
    raise TypeError(f"unexpected result type: {type(result)!r}")


def render_outcome(outcome: PlaybackOutcome) -> dict[str, Any]:
    data = render_result(outcome.result)
    data.update(
        {
            "index": outcome.index,
            "source": outcome.source,
            "from_cache": outcome.from_cache,
            "used_alternative": outcome.used_alternative,
        }
    )
    return data
