"""Mirror analysis endpoints."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from animestream.interfaces.app_state import AppState

router = APIRouter(prefix="/sources", tags=["sources"])


class AnalyzeRequest(BaseModel):
    episodes: dict[str, dict[str, list[str]]] = Field(
        description="language -> mirror -> ordered embed URLs",
    )
    language: str


class AlternativeRequest(AnalyzeRequest):
    index: int = Field(ge=0)
    exclude_source: str | None = None


@router.post("/analyze")
async def analyze(body: AnalyzeRequest, request: Request) -> dict[str, Any]:
    """Provider make-up of every mirror plus the recommended one."""
    state = cast(AppState, request.app.state)
    analyses = state.analyzer.analyze_all_sources(body.episodes, body.language)
    return state.analyzer.generate_report(analyses)


@router.post("/alternative")
async def alternative(body: AlternativeRequest, request: Request) -> dict[str, Any]:
    """Best other mirror for one episode."""
    state = cast(AppState, request.app.state)
    analyses = state.analyzer.analyze_all_sources(body.episodes, body.language)
    found = state.analyzer.find_best_alternative_for_episode(
        body.index, analyses, body.exclude_source
    )
    if found is None:
        return {"alternative": None}
    return {
        "alternative": {
            "source": found.source_name,
            "provider": found.provider.value,
            "url": found.url,
            "is_fast": found.is_fast,
            "is_slow": found.is_slow,
        }
    }
