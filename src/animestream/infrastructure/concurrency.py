"""Foreground/background extraction gate.

Replaces an ``isExtracting`` flag with an owned token: user-initiated
playback takes the single foreground token, adjacent-episode warming only
runs while no foreground token is held. Both draw from one bounded pool of
browsing-session slots.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog

from animestream.domain.entities.errors import ExtractionBusyError
from animestream.domain.entities.extraction import ExtractionToken

log = structlog.get_logger(__name__)


class ExtractionGate:
    """Hands out extraction tokens.

    Usage::

        gate = ExtractionGate(session_slots=3)

        async with gate.foreground() as token:
            await extractor.extract_video_url(url, token=token)

        async with gate.background() as token:
            if token is None:
                return  # foreground playback in flight
    """

    def __init__(self, *, session_slots: int = 3) -> None:
        if session_slots < 1:
            raise ValueError("session_slots must be >= 1")
        self._session_slots = session_slots
        self._slots = asyncio.Semaphore(session_slots)
        self._foreground: ExtractionToken | None = None
        self._background_active = 0

    @property
    def busy(self) -> bool:
        """Whether a foreground extraction currently holds the token."""
        return self._foreground is not None

    @property
    def foreground_token(self) -> ExtractionToken | None:
        return self._foreground

    @asynccontextmanager
    async def foreground(self) -> AsyncIterator[ExtractionToken]:
        """Take the foreground token; raises when one is already active."""
        if self._foreground is not None:
            raise ExtractionBusyError(
                f"extraction {self._foreground.token_id} already in progress"
            )
        token = ExtractionToken(token_id=uuid.uuid4().hex[:12], kind="foreground")
        # Claimed before awaiting a slot so warming stops being scheduled.
        self._foreground = token
        try:
            async with self._slots:
                yield token
        finally:
            self._foreground = None

    @asynccontextmanager
    async def background(self) -> AsyncIterator[ExtractionToken | None]:
        """Yield a background token, or None while foreground work runs."""
        if self._foreground is not None:
            log.debug("background_extraction_skipped", reason="foreground_active")
            yield None
            return
        async with self._slots:
            if self._foreground is not None:
                log.debug("background_extraction_skipped", reason="foreground_active")
                yield None
                return
            token = ExtractionToken(
                token_id=uuid.uuid4().hex[:12], kind="background"
            )
            self._background_active += 1
            try:
                yield token
            finally:
                self._background_active -= 1

    def snapshot(self) -> dict[str, object]:
        return {
            "session_slots": self._session_slots,
            "foreground_active": self._foreground is not None,
            "background_active": self._background_active,
        }
