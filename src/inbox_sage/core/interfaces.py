"""Protocol interfaces for the collaborators around the analysis core."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol

from .config import AnalysisSettings
from .models import AnalysisResult, EmailMessage, ExtractionResult

AnalysisType = Literal[
    "summary", "action_items", "suggested_replies", "grammar", "sentiment", "full"
]


class InferenceError(RuntimeError):
    """Raised when an inference tier cannot produce an analysis."""


class CloudInferenceError(InferenceError):
    """Raised when no configured cloud provider returned a usable analysis."""


class RedactionError(InferenceError):
    """Raised when a message could not be redacted before leaving the machine."""


class LLMError(InferenceError):
    """Raised when the local model fails to respond as expected."""


class JobQueueFull(RuntimeError):
    """Raised when the job queue already holds its maximum of pending jobs."""


class InvalidJobTransition(ValueError):
    """Raised when a job would move backwards through its lifecycle."""


class LocalProcessingDisabled(RuntimeError):
    """Raised when analysis is switched off and no cached result exists."""

    def __init__(self, message_id: str) -> None:
        super().__init__(
            "Local processing is disabled. Enable it in settings to analyse "
            "this message."
        )
        self.message_id = message_id


class LocalInferenceService(Protocol):
    """Runs analysis on a model hosted on the user's machine."""

    async def analyze(self, message: EmailMessage) -> AnalysisResult:
        """Return an analysis tagged ``local`` or raise."""
        raise NotImplementedError


class CloudInferenceService(Protocol):
    """Runs analysis through remote providers."""

    @property
    def is_configured(self) -> bool:
        """Whether at least one provider is available."""
        raise NotImplementedError

    async def analyze(
        self,
        redacted_message: EmailMessage,
        analysis_type: AnalysisType,
        preferences: AnalysisSettings,
    ) -> AnalysisResult:
        """Return an analysis tagged ``cloud`` or raise."""
        raise NotImplementedError


class RedactionService(Protocol):
    """Strips personal data from a message before transmission."""

    def redact(self, message: EmailMessage) -> tuple[EmailMessage, str]:
        """Return the redacted message and a human readable summary."""
        raise NotImplementedError


class ExternalActionExtractor(Protocol):
    """Model-backed action extraction merged with heuristic results."""

    async def extract_actions(self, message: EmailMessage) -> ExtractionResult | None:
        """Return an extraction tagged ``llm`` or ``None`` when unavailable."""
        raise NotImplementedError


class AnalysisCache(Protocol):
    """Stores analyses keyed by message identifier."""

    async def get(self, message_id: str) -> AnalysisResult | None:
        """Return the non-expired analysis for ``message_id`` if present."""
        raise NotImplementedError

    async def set(self, message_id: str, result: AnalysisResult) -> None:
        """Store ``result`` for ``message_id``."""
        raise NotImplementedError

    async def invalidate(self, message_id: str | None = None) -> int:
        """Drop one entry, or all entries when ``message_id`` is ``None``."""
        raise NotImplementedError

    async def entries(self) -> Sequence[AnalysisResult]:
        """Return every non-expired analysis, newest first."""
        raise NotImplementedError


class NetworkState(Protocol):
    """Reports whether the system is running in offline/degraded mode."""

    def is_offline(self) -> bool:
        """Return ``True`` when network-dependent tiers must be skipped."""
        raise NotImplementedError


__all__ = [
    "AnalysisCache",
    "AnalysisType",
    "CloudInferenceError",
    "CloudInferenceService",
    "ExternalActionExtractor",
    "InferenceError",
    "InvalidJobTransition",
    "JobQueueFull",
    "LLMError",
    "LocalInferenceService",
    "LocalProcessingDisabled",
    "NetworkState",
    "RedactionError",
    "RedactionService",
]
