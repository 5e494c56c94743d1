from .candidate_filter import is_video_candidate, should_exclude
from .engine import VideoExtractor
from .instrumentation import DEFAULT_INSTRUMENTATION, InstrumentationScript
from .race import Candidate, RaceSlot

__all__ = [
    "DEFAULT_INSTRUMENTATION",
    "Candidate",
    "InstrumentationScript",
    "RaceSlot",
    "VideoExtractor",
    "is_video_candidate",
    "should_exclude",
]
