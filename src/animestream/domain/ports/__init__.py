from .browser import BrowserSessionFactoryPort, PageSessionPort
from .cache import CachePort
from .video_extractor import VideoExtractorPort

__all__ = [
    "BrowserSessionFactoryPort",
    "CachePort",
    "PageSessionPort",
    "VideoExtractorPort",
]
