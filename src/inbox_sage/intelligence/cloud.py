"""Cloud inference tier for chat-completions compatible providers."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from inbox_sage.core.config import AnalysisSettings, CloudProviderSettings, CloudSettings
from inbox_sage.core.interfaces import AnalysisType, CloudInferenceError
from inbox_sage.core.models import AnalysisResult, EmailMessage

from .prompts import build_analysis_prompt
from .schemas import AnalysisPayload, parse_payload

LOGGER = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an email assistant. Personal data in the message has been "
    "replaced with placeholders such as [EMAIL]; keep them as they are."
)


class ChatCompletionProvider:
    """Send chat-completions requests to one configured provider."""

    def __init__(
        self,
        settings: CloudProviderSettings,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        """Provider display name."""
        return self._settings.name

    async def complete(self, prompt: str) -> str:
        """Return the assistant message content for ``prompt``."""
        endpoint = f"{self._settings.base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "response_format": {"type": "json_object"},
        }
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(
                endpoint,
                json=payload,
                headers={"Authorization": f"Bearer {self._settings.api_key}"},
            )
            if response.status_code != 200:
                LOGGER.error(
                    "Provider %s returned status %s", self.name, response.status_code
                )
                LOGGER.debug("Error response: %s", response.text)
            response.raise_for_status()
            data = response.json()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CloudInferenceError(
                f"Provider {self.name} response missing message content"
            ) from exc
        if not isinstance(content, str) or not content.strip():
            raise CloudInferenceError(f"Provider {self.name} returned empty content")
        return content


class CloudAnalyzer:
    """Try each configured provider in order until one returns an analysis."""

    def __init__(self, providers: Sequence[ChatCompletionProvider] = ()) -> None:
        self._providers = tuple(providers)

    @classmethod
    def from_settings(
        cls,
        settings: CloudSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> CloudAnalyzer:
        """Build one provider per configured entry."""
        return cls(
            [
                ChatCompletionProvider(
                    provider,
                    timeout=settings.timeout_seconds,
                    transport=transport,
                )
                for provider in settings.providers
            ]
        )

    @property
    def is_configured(self) -> bool:
        """Whether at least one provider is available."""
        return bool(self._providers)

    async def analyze(
        self,
        redacted_message: EmailMessage,
        analysis_type: AnalysisType,
        preferences: AnalysisSettings,
    ) -> AnalysisResult:
        """Return a ``cloud`` analysis or raise :class:`CloudInferenceError`."""
        if not self._providers:
            raise CloudInferenceError("No cloud providers are configured")

        prompt = build_analysis_prompt(redacted_message, preferences, analysis_type)
        failures: list[str] = []
        for provider in self._providers:
            try:
                raw = await provider.complete(prompt)
                payload = parse_payload(raw, AnalysisPayload)
            except (httpx.HTTPError, CloudInferenceError, ValueError) as exc:
                LOGGER.warning(
                    "Cloud provider %s failed for %s: %s",
                    provider.name,
                    redacted_message.id,
                    exc,
                )
                failures.append(f"{provider.name}: {exc}")
                continue

            LOGGER.info(
                "Cloud analysis for %s produced by %s", redacted_message.id, provider.name
            )
            return payload.to_result(
                redacted_message,
                model_used="cloud",
                tier="cloud",
                max_summary_length=preferences.max_summary_length,
            )

        raise CloudInferenceError("All cloud providers failed: " + "; ".join(failures))


__all__ = ["ChatCompletionProvider", "CloudAnalyzer"]
