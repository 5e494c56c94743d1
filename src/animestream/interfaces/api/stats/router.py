"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from animestream.interfaces.app_state import AppState

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes per-provider extraction stats, strategy wins, error codes,
    gate utilisation and the episode cache size.
    """
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    gate = getattr(state, "gate", None)
    if gate is not None:
        data["gate"] = gate.snapshot()

    episode_cache = getattr(state, "episode_cache", None)
    if episode_cache is not None:
        data["episode_cache"] = {"entries": len(episode_cache)}

    return JSONResponse(content=data)
