"""Cache infrastructure."""

from .diskcache_adapter import DiskcacheAdapter
from .episode_cache import EpisodeCache

__all__ = ["DiskcacheAdapter", "EpisodeCache"]
