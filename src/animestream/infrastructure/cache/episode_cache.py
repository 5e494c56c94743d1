"""Adjacent episode cache.

Maps ``(season_id, episode_index)`` to an already extracted media URL so the
previous/next episode can start instantly. Keys ignore the mirror, so the
owner clears the cache on every language or mirror switch.

Only URLs passing the candidate filter are ever stored. Writes are
last-write-wins per key; each ``put`` replaces one immutable entry.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

import structlog

from animestream.domain.entities.extraction import CacheEntry
from animestream.domain.ports.cache import CachePort
from animestream.infrastructure.extraction.candidate_filter import is_video_candidate

log = structlog.get_logger(__name__)

_STORE_KEY = "episode_cache:entries"


class EpisodeCache:
    """In-memory episode cache with optional snapshot persistence."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[tuple[str, int], CacheEntry] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, season_id: str, index: int) -> CacheEntry | None:
        return self._entries.get((season_id, index))

    def put(
        self,
        season_id: str,
        index: int,
        video_url: str,
        embed_url: str,
    ) -> CacheEntry | None:
        """Store a URL for one episode. Returns None if the URL is rejected."""
        if not is_video_candidate(video_url):
            log.debug(
                "episode_cache_rejected",
                season_id=season_id,
                index=index,
                video_url=video_url[:120],
            )
            return None
        entry = CacheEntry(
            season_id=season_id,
            episode_index=index,
            video_url=video_url,
            source_embed_url=embed_url,
            timestamp=self._clock(),
        )
        self._entries[(season_id, index)] = entry
        log.debug("episode_cached", season_id=season_id, index=index)
        return entry

    def clear(self) -> None:
        count = len(self._entries)
        self._entries = {}
        log.info("episode_cache_cleared", entries=count)

    def retain(self, keep: Callable[[CacheEntry], bool]) -> int:
        """Drop every entry for which *keep* is false; returns the count dropped."""
        dropped = [key for key, entry in self._entries.items() if not keep(entry)]
        for key in dropped:
            del self._entries[key]
        if dropped:
            log.info("episode_cache_pruned", dropped=len(dropped), kept=len(self._entries))
        return len(dropped)

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> str:
        """Serialize all entries to JSON."""
        return json.dumps([asdict(e) for e in self._entries.values()])

    def restore(self, data: str | None) -> int:
        """Load entries from :meth:`snapshot` output; returns the count kept.

        Malformed records and URLs failing the filter are skipped.
        """
        if not data:
            return 0
        try:
            raw: list[dict[str, Any]] = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            log.warning("episode_cache_restore_invalid")
            return 0
        if not isinstance(raw, list):
            log.warning("episode_cache_restore_invalid")
            return 0

        restored = 0
        for item in raw:
            try:
                entry = CacheEntry(
                    season_id=str(item["season_id"]),
                    episode_index=int(item["episode_index"]),
                    video_url=str(item["video_url"]),
                    source_embed_url=str(item["source_embed_url"]),
                    timestamp=float(item["timestamp"]),
                )
            except (KeyError, TypeError, ValueError):
                continue
            if not is_video_candidate(entry.video_url):
                continue
            self._entries[(entry.season_id, entry.episode_index)] = entry
            restored += 1
        return restored

    async def save(self, store: CachePort, *, ttl: int | None = None) -> None:
        await store.set(_STORE_KEY, self.snapshot(), ttl=ttl)
        log.info("episode_cache_saved", entries=len(self._entries))

    async def load(self, store: CachePort) -> int:
        restored = self.restore(await store.get(_STORE_KEY))
        log.info("episode_cache_loaded", entries=restored)
        return restored
