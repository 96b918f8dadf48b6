"""Async client for the on-machine model behind the local tier."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx

from inbox_sage.core.config import LlmSettings
from inbox_sage.core.interfaces import LLMError

LOGGER = logging.getLogger(__name__)

_MAX_BACKOFF_SECONDS = 8.0


class LLMClient(Protocol):
    """Protocol describing the minimal LLM client behaviour."""

    @property
    def provider_id(self) -> str:
        """Identifier describing the backing model/provider."""
        raise NotImplementedError

    async def generate(self, prompt: str) -> str:
        """Return the raw text completion for ``prompt``."""
        raise NotImplementedError


class OllamaClient:
    """JSON-mode completions from an Ollama server.

    Transport errors and 5xx replies are retried with exponential backoff.
    Cancelling ``generate`` (for example from ``asyncio.wait_for``) aborts the
    in-flight request and any pending retry.
    """

    def __init__(
        self,
        settings: LlmSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def provider_id(self) -> str:
        """Return a human readable identifier for the configured model."""
        return f"ollama:{self._settings.model}"

    @property
    def endpoint(self) -> str:
        """Generation endpoint derived from the configured base URL."""
        return f"{self._settings.base_url.rstrip('/')}/api/generate"

    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the model's JSON text reply."""
        payload = self._build_payload(prompt)
        attempts = self._settings.max_attempts
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    response = await client.post(self.endpoint, json=payload)
                    if response.status_code < 500:
                        response.raise_for_status()
                        return _completion_text(response)
                    failure = f"server returned {response.status_code}"
                except httpx.TransportError as exc:
                    failure = str(exc) or type(exc).__name__
                except httpx.HTTPStatusError as exc:
                    raise LLMError(
                        f"{self.provider_id} rejected the request: "
                        f"{exc.response.status_code}"
                    ) from exc

                LOGGER.warning(
                    "%s attempt %d/%d failed: %s",
                    self.provider_id,
                    attempt,
                    attempts,
                    failure,
                )
                if attempt < attempts:
                    await asyncio.sleep(self._backoff(attempt))

        raise LLMError(f"{self.provider_id} failed after {attempts} attempts")

    def _build_payload(self, prompt: str) -> dict[str, object]:
        options: dict[str, object] = {"temperature": self._settings.temperature}
        if self._settings.max_output_tokens is not None:
            options["num_predict"] = self._settings.max_output_tokens
        return {
            "model": self._settings.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": options,
        }

    def _backoff(self, attempt: int) -> float:
        delay = self._settings.retry_backoff_seconds * 2 ** (attempt - 1)
        return min(delay, _MAX_BACKOFF_SECONDS)


def _completion_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError as exc:
        raise LLMError("LLM returned invalid JSON") from exc
    result = data.get("response") if isinstance(data, dict) else None
    if not isinstance(result, str):
        raise LLMError("LLM response missing 'response' field")
    return result


__all__ = ["LLMClient", "LLMError", "OllamaClient"]
