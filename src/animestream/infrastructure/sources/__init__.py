from .analyzer import DEFAULT_FAST_PROVIDERS, DEFAULT_SLOW_PROVIDERS, SourceAnalyzer

__all__ = ["DEFAULT_FAST_PROVIDERS", "DEFAULT_SLOW_PROVIDERS", "SourceAnalyzer"]
