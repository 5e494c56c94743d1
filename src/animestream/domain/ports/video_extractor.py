"""Video Extractor Port - resolve an embed page to a direct media URL."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from animestream.domain.entities.extraction import (
    ExtractionResult,
    ExtractionToken,
)


class VideoExtractorPort(Protocol):
    async def extract_video_url(
        self, embed_url: str, *, token: ExtractionToken | None = None
    ) -> ExtractionResult:
        """Run one extraction attempt. Never raises."""
        ...

    async def extract_multiple_video_urls(
        self, embed_urls: Sequence[str]
    ) -> dict[str, str | None]:
        """Extract sequentially; keys are the input URLs."""
        ...
