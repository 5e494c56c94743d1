from .episode_playback import (
    EpisodePlaybackUseCase,
    PlaybackOutcome,
    PlaybackSelection,
)

__all__ = ["EpisodePlaybackUseCase", "PlaybackOutcome", "PlaybackSelection"]
