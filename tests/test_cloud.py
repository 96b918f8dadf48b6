"""Tests for the cloud inference tier."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import httpx
import pytest

from inbox_sage.core.config import AnalysisSettings, CloudProviderSettings, CloudSettings
from inbox_sage.core.interfaces import CloudInferenceError
from inbox_sage.core.models import EmailMessage
from inbox_sage.intelligence import ChatCompletionProvider, CloudAnalyzer

ANALYSIS = {
    "summary": "A colleague asks for a budget review.",
    "action_items": [{"text": "Review the budget", "priority": "medium"}],
    "sentiment": "neutral",
    "priority": "medium",
    "categories": ["budget"],
}


def _completion(content: str) -> dict[str, object]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _message() -> EmailMessage:
    return EmailMessage(
        id="msg-9",
        subject="Budget",
        sender="[EMAIL]",
        body="Please review the budget.",
        timestamp=datetime(2024, 12, 2, 9, 0, tzinfo=UTC),
    )


def _provider(name: str, host: str) -> CloudProviderSettings:
    return CloudProviderSettings(
        name=name, base_url=f"https://{host}/v1", api_key=f"key-{name}", model="gpt-test"
    )


def test_provider_sends_chat_completion_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion(json.dumps(ANALYSIS)))

    provider = ChatCompletionProvider(
        _provider("primary", "api.one.test"), transport=httpx.MockTransport(handler)
    )

    content = asyncio.run(provider.complete("analyse this"))

    assert json.loads(content)["summary"] == ANALYSIS["summary"]
    request = seen[0]
    assert request.url == "https://api.one.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer key-primary"
    body = json.loads(request.content)
    assert body["model"] == "gpt-test"
    assert body["response_format"] == {"type": "json_object"}
    assert body["messages"][-1] == {"role": "user", "content": "analyse this"}


def test_cloud_analyzer_falls_through_to_next_provider() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.one.test":
            return httpx.Response(500, json={"error": "overloaded"})
        return httpx.Response(200, json=_completion(json.dumps(ANALYSIS)))

    settings = CloudSettings(
        providers=[_provider("primary", "api.one.test"), _provider("backup", "api.two.test")]
    )
    analyzer = CloudAnalyzer.from_settings(settings, transport=httpx.MockTransport(handler))

    result = asyncio.run(analyzer.analyze(_message(), "full", AnalysisSettings()))

    assert analyzer.is_configured
    assert result.tier == "cloud"
    assert result.model_used == "cloud"
    assert result.message_id == "msg-9"
    assert result.categories == ("budget",)
    assert result.action_items[0].text == "Review the budget"


@pytest.mark.parametrize(
    ("status", "payload"),
    [
        (401, {"error": "bad key"}),
        (200, {"choices": []}),
        (200, _completion("")),
        (200, _completion("not json")),
    ],
)
def test_cloud_analyzer_raises_when_every_provider_fails(
    status: int, payload: dict[str, object]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    analyzer = CloudAnalyzer.from_settings(
        CloudSettings(providers=[_provider("primary", "api.one.test")]),
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(CloudInferenceError, match="All cloud providers failed"):
        asyncio.run(analyzer.analyze(_message(), "full", AnalysisSettings()))


def test_unconfigured_analyzer_refuses() -> None:
    analyzer = CloudAnalyzer()

    assert not analyzer.is_configured
    with pytest.raises(CloudInferenceError):
        asyncio.run(analyzer.analyze(_message(), "summary", AnalysisSettings()))
