"""Shared test fixtures for the AnimeStream test suite."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import pytest

from animestream.infrastructure.config.schema import ExtractionConfig
from animestream.infrastructure.extraction.instrumentation import (
    DOM_SCAN_SCRIPT,
    FINAL_VIDEO_SCRIPT,
)

# ---------------------------------------------------------------------------
# Fake browsing session
# ---------------------------------------------------------------------------


class FakeSession:
    """In-memory stand-in for a Playwright-backed page session.

    ``dom``/``hook``/``final`` are the values returned by the respective
    page scripts; an Exception instance is raised instead. ``*_delay`` delays
    the evaluation in seconds.
    """

    def __init__(
        self,
        *,
        status: int | None = 200,
        navigate_error: Exception | None = None,
        requests: tuple[str, ...] = (),
        dom: Any = None,
        hook: Any = None,
        final: Any = None,
        dom_delay: float = 0.0,
        hook_delay: float = 0.0,
    ) -> None:
        self.status = status
        self.navigate_error = navigate_error
        self.requests = requests
        self.dom = dom
        self.hook = hook
        self.final = final
        self.dom_delay = dom_delay
        self.hook_delay = hook_delay

        self.navigated: list[str] = []
        self.init_scripts: list[str] = []
        self.callbacks: list[Callable[[str], None]] = []
        self.close_calls = 0

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def on_request(self, callback: Callable[[str], None]) -> None:
        self.callbacks.append(callback)

    def emit(self, url: str) -> None:
        for callback in list(self.callbacks):
            callback(url)

    async def navigate(self, url: str, *, timeout_ms: int) -> int | None:
        self.navigated.append(url)
        for request_url in self.requests:
            self.emit(request_url)
        if self.navigate_error is not None:
            raise self.navigate_error
        return self.status

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if script == DOM_SCAN_SCRIPT:
            value, delay = self.dom, self.dom_delay
        elif script == FINAL_VIDEO_SCRIPT:
            value, delay = self.final, 0.0
        else:
            value, delay = self.hook, self.hook_delay
        if delay:
            await asyncio.sleep(delay)
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self) -> None:
        self.close_calls += 1
        self.callbacks.clear()


class FakeSessionFactory:
    """Hands out prepared FakeSessions in order (fresh defaults when exhausted)."""

    def __init__(self, *sessions: FakeSession, enter_error: Exception | None = None):
        self._sessions = list(sessions)
        self.enter_error = enter_error
        self.opened: list[FakeSession] = []
        self.active = 0
        self.max_active = 0
        self.cleaned_up = False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[FakeSession]:
        if self.enter_error is not None:
            raise self.enter_error
        session = self._sessions.pop(0) if self._sessions else FakeSession()
        self.opened.append(session)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            yield session
        finally:
            self.active -= 1
            await session.close()

    async def cleanup(self) -> None:
        self.cleaned_up = True


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fast_extraction_config() -> ExtractionConfig:
    """Extraction timings short enough for unit tests."""
    return ExtractionConfig(
        settle_delay_seconds=0.0,
        network_timeout_seconds=0.2,
        dom_timeout_seconds=0.2,
        hook_timeout_seconds=0.2,
        navigation_timeout_seconds=1.0,
        batch_delay_seconds=0.0,
    )


# ---------------------------------------------------------------------------
# Episode listing fixtures
# ---------------------------------------------------------------------------

SIBNET = "https://video.sibnet.ru/shell.php?videoid={}"
VIDMOLY = "https://vidmoly.net/embed-ep{}.html"
SENDVID = "https://sendvid.com/embed/ep{}"
UNKNOWN = "https://cdn.example.org/e/{}"


@pytest.fixture()
def episode_listing() -> dict[str, dict[str, list[str]]]:
    """Two languages; "S1" all slow, "S2" all fast, "S3" mixed."""
    return {
        "vostfr": {
            "S1": [SIBNET.format(i) for i in range(4)],
            "S2": [VIDMOLY.format(i) for i in range(4)],
            "S3": [
                SIBNET.format(10),
                SENDVID.format(1),
                SIBNET.format(12),
                UNKNOWN.format(3),
            ],
        },
        "vf": {
            "S1": [SIBNET.format(100 + i) for i in range(4)],
        },
    }


# ---------------------------------------------------------------------------
# Fake browser fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_session() -> type[FakeSession]:
    """Factory for prepared fake sessions: ``make_session(status=404)``."""
    return FakeSession


@pytest.fixture()
def make_session_factory() -> type[FakeSessionFactory]:
    """Factory for fake session factories: ``make_session_factory(s1, s2)``."""
    return FakeSessionFactory
