"""Playback endpoints: season selection, episode playback, cache control."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from animestream.application.use_cases.episode_playback import PlaybackSelection
from animestream.interfaces.api.presenter import render_outcome
from animestream.interfaces.app_state import AppState

router = APIRouter(prefix="/playback", tags=["playback"])


class SeasonRequest(BaseModel):
    season_id: str = Field(min_length=1)
    episodes: dict[str, dict[str, list[str]]]
    language: str
    source: str | None = None


class LanguageRequest(BaseModel):
    language: str


class SourceRequest(BaseModel):
    source: str


def _render_selection(selection: PlaybackSelection) -> dict[str, Any]:
    return {
        "season_id": selection.season_id,
        "language": selection.language,
        "source": selection.source,
        "sources": sorted(selection.mirrors),
        "episode_count": selection.episode_count,
    }


@router.post("/season")
async def load_season(body: SeasonRequest, request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    selection = state.playback_uc.load_season(
        body.season_id, body.episodes, body.language, source=body.source
    )
    return _render_selection(selection)


@router.put("/language")
async def switch_language(body: LanguageRequest, request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return _render_selection(state.playback_uc.switch_language(body.language))


@router.put("/source")
async def switch_source(body: SourceRequest, request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return _render_selection(state.playback_uc.switch_source(body.source))


@router.post("/episodes/{index}")
async def play_episode(index: int, request: Request) -> dict[str, Any]:
    """Resolve one episode (cache first, alternative mirror on failure)."""
    state = cast(AppState, request.app.state)
    outcome = await state.playback_uc.play(index)
    return render_outcome(outcome)


@router.delete("/cache")
async def clear_cache(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    cleared = len(state.episode_cache)
    state.episode_cache.clear()
    return {"cleared": cleared}
