"""Extraction endpoints (single embed and sequential batch).

Both hold the foreground token while browsing, so they suppress adjacent
warming and a concurrent request is rejected with 409.
"""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from animestream.domain.entities.extraction import ExtractionSuccess
from animestream.infrastructure.extraction.verify import verify_video_url
from animestream.interfaces.api.presenter import render_result
from animestream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/extract", tags=["extraction"])


class ExtractRequest(BaseModel):
    embed_url: str = Field(min_length=1)
    verify: bool = Field(
        default=False,
        description="HEAD-check the extracted URL before returning it.",
    )


class BatchExtractRequest(BaseModel):
    embed_urls: list[str] = Field(min_length=1)


@router.post("")
async def extract(body: ExtractRequest, request: Request) -> dict[str, Any]:
    """Resolve one embed page to a direct media URL."""
    state = cast(AppState, request.app.state)
    async with state.gate.foreground() as token:
        result = await state.extractor.extract_video_url(body.embed_url, token=token)
    data = render_result(result)

    if body.verify and isinstance(result, ExtractionSuccess):
        data["verified"] = await verify_video_url(
            state.http_client,
            result.video_url,
            embed_url=body.embed_url,
            timeout=state.config.http_timeout_seconds,
        )
    return data


@router.post("/batch")
async def extract_batch(body: BatchExtractRequest, request: Request) -> dict[str, Any]:
    """Resolve several embeds one after another."""
    state = cast(AppState, request.app.state)
    async with state.gate.foreground():
        results = await state.extractor.extract_multiple_video_urls(body.embed_urls)
    return {
        "results": results,
        "resolved": sum(1 for url in results.values() if url is not None),
        "total": len(results),
    }
