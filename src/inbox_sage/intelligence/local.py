"""Local inference tier backed by an on-machine LLM."""

from __future__ import annotations

import logging

from inbox_sage.core.config import AnalysisSettings
from inbox_sage.core.interfaces import InferenceError
from inbox_sage.core.models import AnalysisResult, EmailMessage

from .llm import LLMClient
from .prompts import build_analysis_prompt
from .schemas import AnalysisPayload, parse_payload

LOGGER = logging.getLogger(__name__)


class LocalLLMAnalyzer:
    """Run full analyses through an :class:`LLMClient` on the running loop."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        preferences: AnalysisSettings | None = None,
    ) -> None:
        self._llm = llm_client
        self._preferences = preferences or AnalysisSettings()

    async def analyze(self, message: EmailMessage) -> AnalysisResult:
        """Return a ``local`` analysis or raise :class:`InferenceError`."""
        prompt = build_analysis_prompt(message, self._preferences)
        try:
            raw = await self._llm.generate(prompt)
        except InferenceError:
            raise
        except Exception as exc:
            raise InferenceError(
                f"Local model {self._llm.provider_id} failed: {exc}"
            ) from exc

        try:
            payload = parse_payload(raw, AnalysisPayload)
        except ValueError as exc:
            LOGGER.debug("Discarding local model output for %s: %s", message.id, exc)
            raise InferenceError(str(exc)) from exc

        LOGGER.debug(
            "Local analysis for %s produced by %s", message.id, self._llm.provider_id
        )
        return payload.to_result(
            message,
            model_used="local",
            tier="local",
            max_summary_length=self._preferences.max_summary_length,
        )


__all__ = ["LocalLLMAnalyzer"]
