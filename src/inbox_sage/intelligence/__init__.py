"""LLM-powered and heuristic analysis services."""

from inbox_sage.core.interfaces import InferenceError

from .actions import LLMActionExtractor
from .category import KeywordCategoryService
from .cloud import ChatCompletionProvider, CloudAnalyzer
from .fallback import HeuristicAnalyzer, build_minimal_analysis
from .llm import LLMClient, LLMError, OllamaClient
from .local import LocalLLMAnalyzer
from .priority import score_priority
from .redaction import PiiRedactor, RedactionRule

__all__ = [
    "ChatCompletionProvider",
    "CloudAnalyzer",
    "HeuristicAnalyzer",
    "InferenceError",
    "KeywordCategoryService",
    "LLMActionExtractor",
    "LLMClient",
    "LLMError",
    "LocalLLMAnalyzer",
    "OllamaClient",
    "PiiRedactor",
    "RedactionRule",
    "build_minimal_analysis",
    "score_priority",
]
