"""Action-item and date extraction from free-form email text."""

from .dates import DateMatch, DateResolver, classify_date_context
from .engine import ActionExtractor, merge_results, score_extraction
from .patterns import DEFAULT_PATTERNS, ActionPattern, PatternCatalog

__all__ = [
    "DEFAULT_PATTERNS",
    "ActionExtractor",
    "ActionPattern",
    "DateMatch",
    "DateResolver",
    "PatternCatalog",
    "classify_date_context",
    "merge_results",
    "score_extraction",
]
