"""Application configuration models and loader utilities."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator


class AnalysisSettings(BaseModel):
    """User-facing switches consulted on every analysis request."""

    enable_local_processing: bool = Field(
        default=True, description="Allow analysis to run at all"
    )
    enable_cloud_fallback: bool = Field(
        default=False, description="Escalate to cloud providers when local fails"
    )
    enable_pii_redaction: bool = Field(
        default=True, description="Redact PII before anything leaves the machine"
    )
    enable_caching: bool = Field(
        default=True, description="Reuse previous analyses by message id"
    )
    preferred_tone: Literal["formal", "casual", "concise"] = Field(
        default="casual", description="Tone requested from reply generators"
    )
    max_summary_length: int = Field(
        default=200, ge=20, description="Upper bound on summary characters"
    )
    preferred_language: str = Field(default="en", description="Reply language")


class LlmSettings(BaseModel):
    """Settings for the local LLM provider."""

    enabled: bool = Field(default=True, description="Use the local model tier")
    base_url: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )
    model: str = Field(default="llama3.1:8b", description="Model identifier")
    timeout_seconds: int = Field(
        default=30, description="Request timeout for LLM calls"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for LLM completions",
    )
    max_output_tokens: int | None = Field(
        default=768,
        ge=32,
        description="Maximum tokens to request from the provider",
    )
    max_attempts: int = Field(
        default=3, ge=1, description="Requests made before giving up"
    )
    retry_backoff_seconds: float = Field(
        default=1.0, ge=0.0, description="First retry delay, doubled per attempt"
    )


class CloudProviderSettings(BaseModel):
    """Connection details for one chat-completions compatible provider."""

    name: str = Field(description="Display name, e.g. 'openai'")
    base_url: str = Field(
        default="https://api.openai.com/v1", description="API root URL"
    )
    api_key: str = Field(description="Bearer token for the provider")
    model: str = Field(default="gpt-4o-mini", description="Model identifier")
    max_tokens: int = Field(default=1000, ge=32)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class CloudSettings(BaseModel):
    """Settings for cloud fallback providers."""

    providers: list[CloudProviderSettings] = Field(default_factory=list)
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="HTTP timeout for provider calls"
    )

    @field_validator("providers", mode="before")
    @classmethod
    def _parse_json_providers(cls, value: Any) -> Any:
        """Accept a JSON array so providers can be set from the environment."""
        if isinstance(value, str):
            return json.loads(value)
        return value


class CacheSettings(BaseModel):
    """Settings for the analysis cache."""

    ttl_seconds: int = Field(
        default=24 * 60 * 60, ge=1, description="Lifetime of a cached analysis"
    )
    max_entries: int | None = Field(
        default=500, ge=1, description="Evict oldest entries beyond this size"
    )


class QueueSettings(BaseModel):
    """Settings for the analysis job queue."""

    max_pending: int = Field(default=100, ge=1, description="Bounded FIFO size")
    retention_seconds: int = Field(
        default=60 * 60, ge=1, description="Age after which finished jobs are swept"
    )
    sweep_interval_seconds: int = Field(
        default=60 * 60, ge=1, description="Period of the background sweep"
    )


class TierSettings(BaseModel):
    """Upper bounds on how long each analysis tier may take."""

    cache_timeout_seconds: float = Field(default=5.0, gt=0)
    local_timeout_seconds: float = Field(default=30.0, gt=0)
    cloud_timeout_seconds: float = Field(default=45.0, gt=0)


class ExtractionSettings(BaseModel):
    """Settings for action-item extraction."""

    use_llm_extraction: bool = Field(
        default=False, description="Merge LLM extraction with heuristics"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    llm: LlmSettings = Field(default_factory=LlmSettings)
    cloud: CloudSettings = Field(default_factory=CloudSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    tiers: TierSettings = Field(default_factory=TierSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "INBOX_SAGE_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AnalysisSettings",
    "AppSettings",
    "CacheSettings",
    "CloudProviderSettings",
    "CloudSettings",
    "ExtractionSettings",
    "LlmSettings",
    "LoggingSettings",
    "QueueSettings",
    "TierSettings",
    "load_app_settings",
]
