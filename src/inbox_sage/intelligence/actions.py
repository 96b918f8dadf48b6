"""LLM-backed action extraction merged with heuristic results."""

from __future__ import annotations

import logging

from inbox_sage.core.models import EmailMessage, ExtractionResult

from .llm import LLMClient
from .prompts import build_action_prompt
from .schemas import ActionExtractionPayload, parse_payload

LOGGER = logging.getLogger(__name__)

_LLM_CONFIDENCE = 0.9


class LLMActionExtractor:
    """Ask the local model for action items; ``None`` when it cannot help."""

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm = llm_client

    async def extract_actions(self, message: EmailMessage) -> ExtractionResult | None:
        """Return an ``llm`` extraction or ``None`` on any failure."""
        try:
            raw = await self._llm.generate(build_action_prompt(message))
            payload = parse_payload(raw, ActionExtractionPayload)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "LLM action extraction failed for %s using %s: %s",
                message.id,
                self._llm.provider_id,
                exc,
            )
            return None
        return payload.to_result(_LLM_CONFIDENCE)


__all__ = ["LLMActionExtractor"]
