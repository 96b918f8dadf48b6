"""Explicit construction of the analysis services from settings."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from inbox_sage.commands import CommandDispatcher
from inbox_sage.core.config import AppSettings
from inbox_sage.core.interfaces import CloudInferenceService, LocalInferenceService
from inbox_sage.extraction import ActionExtractor, PatternCatalog
from inbox_sage.intelligence import (
    CloudAnalyzer,
    HeuristicAnalyzer,
    LLMActionExtractor,
    LLMClient,
    LocalLLMAnalyzer,
    OllamaClient,
    PiiRedactor,
)
from inbox_sage.orchestration import AnalysisOrchestrator, JobQueue, NetworkMonitor
from inbox_sage.storage import InMemoryAnalysisCache

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AssistantServices:
    """Every long-lived collaborator, built once per process."""

    settings: AppSettings
    catalog: PatternCatalog
    extractor: ActionExtractor
    cache: InMemoryAnalysisCache
    queue: JobQueue
    network: NetworkMonitor
    orchestrator: AnalysisOrchestrator
    dispatcher: CommandDispatcher
    _sweeper: asyncio.Task[None] | None = field(default=None, init=False)

    def start(self) -> None:
        """Start the periodic job sweep on the running loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        interval = self.settings.queue.sweep_interval_seconds
        self._sweeper = asyncio.get_running_loop().create_task(
            self.queue.run_sweeper(interval)
        )
        LOGGER.debug("Job sweeper started (every %ss)", interval)

    async def aclose(self) -> None:
        """Stop background tasks."""
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


def build_services(
    settings: AppSettings | None = None,
    *,
    llm_client: LLMClient | None = None,
    local: LocalInferenceService | None = None,
    cloud: CloudInferenceService | None = None,
    network: NetworkMonitor | None = None,
) -> AssistantServices:
    """Wire the analysis core from ``settings``.

    Collaborators passed explicitly replace the ones built from settings.
    """
    app_settings = settings or AppSettings()

    if llm_client is None and app_settings.llm.enabled:
        llm_client = OllamaClient(app_settings.llm)

    external = (
        LLMActionExtractor(llm_client)
        if llm_client is not None and app_settings.extraction.use_llm_extraction
        else None
    )
    catalog = PatternCatalog()
    extractor = ActionExtractor(
        catalog,
        external=external,
        external_timeout=app_settings.tiers.local_timeout_seconds,
    )

    if local is None and llm_client is not None:
        local = LocalLLMAnalyzer(llm_client, preferences=app_settings.analysis)
    if cloud is None:
        cloud = CloudAnalyzer.from_settings(app_settings.cloud)

    cache = InMemoryAnalysisCache(
        ttl_seconds=app_settings.cache.ttl_seconds,
        max_entries=app_settings.cache.max_entries,
    )
    queue = JobQueue(
        max_pending=app_settings.queue.max_pending,
        retention_seconds=app_settings.queue.retention_seconds,
    )
    monitor = network or NetworkMonitor()
    orchestrator = AnalysisOrchestrator(
        heuristic=HeuristicAnalyzer(
            extractor, max_summary_length=app_settings.analysis.max_summary_length
        ),
        queue=queue,
        cache=cache,
        local=local,
        cloud=cloud,
        redactor=PiiRedactor(),
        network=monitor,
        settings=app_settings.analysis,
        timeouts=app_settings.tiers,
    )
    dispatcher = CommandDispatcher(
        orchestrator=orchestrator,
        extractor=extractor,
        cache=cache,
        queue=queue,
        network=monitor,
    )
    LOGGER.debug(
        "Services built (local tier: %s, cloud providers: %d)",
        "on" if local is not None else "off",
        len(app_settings.cloud.providers),
    )
    return AssistantServices(
        settings=app_settings,
        catalog=catalog,
        extractor=extractor,
        cache=cache,
        queue=queue,
        network=monitor,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
    )


__all__ = ["AssistantServices", "build_services"]
