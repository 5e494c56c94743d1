"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter, load_config)
against temporary directories.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from animestream.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=2,
    )
    async with adapter:
        yield adapter
