"""Core utilities for configuration, logging, and domain models."""

from .config import AnalysisSettings, AppSettings, load_app_settings
from .interfaces import LocalProcessingDisabled
from .logging import configure_logging

__all__ = [
    "AnalysisSettings",
    "AppSettings",
    "LocalProcessingDisabled",
    "configure_logging",
    "load_app_settings",
]
