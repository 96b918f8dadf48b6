"""Storage backends for analysis results."""

from .cache import InMemoryAnalysisCache

__all__ = ["InMemoryAnalysisCache"]
