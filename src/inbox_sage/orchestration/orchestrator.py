"""Tiered analysis: cache, local model, cloud model, heuristics, minimal."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TypeVar

from inbox_sage.core.config import AnalysisSettings, TierSettings
from inbox_sage.core.interfaces import (
    AnalysisCache,
    CloudInferenceService,
    LocalInferenceService,
    LocalProcessingDisabled,
    NetworkState,
    RedactionError,
    RedactionService,
)
from inbox_sage.core.models import AnalysisResult, EmailMessage, JobKind
from inbox_sage.intelligence.fallback import HeuristicAnalyzer, build_minimal_analysis

from .jobs import JobQueue, JobQueueFull

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AnalysisOrchestrator:
    """Turn a message into an :class:`AnalysisResult`, escalating on failure.

    Only :class:`LocalProcessingDisabled` ever reaches the caller; every
    other failure moves on to the next, coarser tier. The heuristic and
    minimal tiers always run on this machine.
    """

    def __init__(
        self,
        *,
        heuristic: HeuristicAnalyzer,
        queue: JobQueue,
        cache: AnalysisCache | None = None,
        local: LocalInferenceService | None = None,
        cloud: CloudInferenceService | None = None,
        redactor: RedactionService | None = None,
        network: NetworkState | None = None,
        settings: AnalysisSettings | None = None,
        timeouts: TierSettings | None = None,
    ) -> None:
        self._heuristic = heuristic
        self._queue = queue
        self._cache = cache
        self._local = local
        self._cloud = cloud
        self._redactor = redactor
        self._network = network
        self._settings = settings or AnalysisSettings()
        self._timeouts = timeouts or TierSettings()

    @property
    def settings(self) -> AnalysisSettings:
        """Settings used when a call does not pass its own."""
        return self._settings

    @settings.setter
    def settings(self, value: AnalysisSettings) -> None:
        self._settings = value

    @property
    def queue(self) -> JobQueue:
        """The job queue serialising escalations."""
        return self._queue

    async def analyze(
        self,
        message: EmailMessage,
        settings: AnalysisSettings | None = None,
        *,
        force_refresh: bool = False,
        kind: JobKind = "summary",
    ) -> AnalysisResult:
        """Return an analysis for ``message``.

        A cached result is returned without queueing. Otherwise the escalation
        runs as a job behind any earlier requests. When the queue is full the
        heuristic tier runs immediately instead.
        """
        active = settings or self._settings

        if active.enable_caching and not force_refresh:
            cached = await self._from_cache(message)
            if cached is not None:
                return cached

        if not active.enable_local_processing:
            LOGGER.info("Rejecting %s: local processing is disabled", message.id)
            raise LocalProcessingDisabled(message.id)

        try:
            result = await self._queue.submit(
                message.id, lambda: self._escalate(message, active), kind=kind
            )
        except JobQueueFull:
            LOGGER.warning(
                "Job queue full; analysing %s with heuristics only", message.id
            )
            result = await self._local_fallback(message, active, include_external=False)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Escalation failed for %s: %s", message.id, exc)
            result = await self._local_fallback(message, active, include_external=False)

        if active.enable_caching:
            await self._store(message, result)
        return result

    async def _escalate(
        self, message: EmailMessage, settings: AnalysisSettings
    ) -> AnalysisResult:
        offline = self._is_offline(message)
        if offline:
            LOGGER.info("Offline; skipping model tiers for %s", message.id)
        else:
            result = await self._try_local(message)
            if result is not None:
                return result
            result = await self._try_cloud(message, settings)
            if result is not None:
                return result
        return await self._local_fallback(
            message, settings, include_external=not offline
        )

    async def _try_local(self, message: EmailMessage) -> AnalysisResult | None:
        local = self._local
        if local is None:
            return None
        return await self._attempt(
            "local",
            message,
            lambda: local.analyze(message),
            self._timeouts.local_timeout_seconds,
        )

    async def _try_cloud(
        self, message: EmailMessage, settings: AnalysisSettings
    ) -> AnalysisResult | None:
        cloud = self._cloud
        if cloud is None or not settings.enable_cloud_fallback:
            return None
        if not cloud.is_configured:
            LOGGER.debug("Cloud fallback enabled but no provider is configured")
            return None

        async def run() -> AnalysisResult:
            outgoing = message
            if settings.enable_pii_redaction:
                outgoing = self._redact(message)
            result = await cloud.analyze(outgoing, "full", settings)
            # Cloud results describe the original message, not its redacted copy.
            if result.message_id != message.id:
                result = replace(result, message_id=message.id)
            return result

        return await self._attempt(
            "cloud", message, run, self._timeouts.cloud_timeout_seconds
        )

    def _redact(self, message: EmailMessage) -> EmailMessage:
        if self._redactor is None:
            raise RedactionError("PII redaction is enabled but no redactor is set")
        try:
            redacted, summary = self._redactor.redact(message)
        except Exception as exc:
            raise RedactionError(f"Redaction failed: {exc}") from exc
        LOGGER.debug("Redacted %s before cloud analysis: %s", message.id, summary)
        return redacted

    def _is_offline(self, message: EmailMessage) -> bool:
        if self._network is None:
            return False
        try:
            return self._network.is_offline()
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Network state unavailable for %s, assuming offline: %s", message.id, exc
            )
            return True

    async def _local_fallback(
        self,
        message: EmailMessage,
        settings: AnalysisSettings,
        *,
        include_external: bool = True,
    ) -> AnalysisResult:
        try:
            return await self._heuristic.analyze(
                message,
                max_summary_length=settings.max_summary_length,
                include_external=include_external,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Heuristic tier failed for %s: %s", message.id, exc)
        return build_minimal_analysis(message)

    async def _attempt(
        self,
        tier: str,
        message: EmailMessage,
        call: Callable[[], Awaitable[T]],
        timeout: float,
    ) -> T | None:
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except TimeoutError:
            LOGGER.warning(
                "%s tier timed out after %ss for %s", tier.title(), timeout, message.id
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("%s tier failed for %s: %s", tier.title(), message.id, exc)
        return None

    async def _from_cache(self, message: EmailMessage) -> AnalysisResult | None:
        cache = self._cache
        if cache is None:
            return None
        cached = await self._attempt(
            "cache",
            message,
            lambda: cache.get(message.id),
            self._timeouts.cache_timeout_seconds,
        )
        if cached is not None:
            LOGGER.debug("Serving cached analysis for %s", message.id)
        return cached

    async def _store(self, message: EmailMessage, result: AnalysisResult) -> None:
        if self._cache is None:
            return
        try:
            await asyncio.wait_for(
                self._cache.set(message.id, result),
                timeout=self._timeouts.cache_timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Could not cache analysis for %s: %s", message.id, exc)


__all__ = ["AnalysisOrchestrator"]
