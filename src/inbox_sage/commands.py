"""Typed commands accepted by the analysis core and their dispatcher."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from inbox_sage.core.config import AnalysisSettings
from inbox_sage.core.interfaces import NetworkState
from inbox_sage.core.models import AnalysisResult, EmailMessage, Priority
from inbox_sage.extraction import ActionExtractor, ActionPattern
from inbox_sage.orchestration import AnalysisOrchestrator, JobQueue
from inbox_sage.storage import InMemoryAnalysisCache

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AnalyzeMessage:
    message: EmailMessage
    force_refresh: bool = False


@dataclass(slots=True, frozen=True)
class ExtractActions:
    message: EmailMessage
    anchor: datetime | None = None


@dataclass(slots=True, frozen=True)
class GetSettings:
    pass


@dataclass(slots=True, frozen=True)
class UpdateSettings:
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ClearCache:
    message_id: str | None = None


@dataclass(slots=True, frozen=True)
class GetAnalysisHistory:
    limit: int | None = None


@dataclass(slots=True, frozen=True)
class ListJobs:
    pass


@dataclass(slots=True, frozen=True)
class SweepJobs:
    pass


@dataclass(slots=True, frozen=True)
class ListPatterns:
    pass


@dataclass(slots=True, frozen=True)
class AddPattern:
    name: str
    regex: str
    priority: Priority
    category: str
    requires_date: bool = False
    description: str = ""


@dataclass(slots=True, frozen=True)
class RemovePattern:
    name: str


Command = (
    AnalyzeMessage
    | ExtractActions
    | GetSettings
    | UpdateSettings
    | ClearCache
    | GetAnalysisHistory
    | ListJobs
    | SweepJobs
    | ListPatterns
    | AddPattern
    | RemovePattern
)


class CommandDispatcher:
    """Route each command to the service that owns it.

    ``LocalProcessingDisabled`` from :class:`AnalyzeMessage` and
    ``ValueError`` from invalid settings or patterns propagate to the caller.
    """

    def __init__(
        self,
        *,
        orchestrator: AnalysisOrchestrator,
        extractor: ActionExtractor,
        cache: InMemoryAnalysisCache,
        queue: JobQueue,
        network: NetworkState | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._extractor = extractor
        self._cache = cache
        self._queue = queue
        self._network = network

    @property
    def settings(self) -> AnalysisSettings:
        """Current analysis settings."""
        return self._orchestrator.settings

    async def dispatch(self, command: Command) -> Any:
        """Execute ``command`` and return its result."""
        match command:
            case AnalyzeMessage(message=message, force_refresh=force_refresh):
                return await self.analyze(message, force_refresh=force_refresh)
            case ExtractActions(message=message, anchor=anchor):
                return await self._extractor.extract(
                    message, anchor=anchor, include_external=not self._offline()
                )
            case GetSettings():
                return self.settings
            case UpdateSettings(changes=changes):
                return self._update_settings(changes)
            case ClearCache(message_id=message_id):
                return await self._cache.invalidate(message_id)
            case GetAnalysisHistory(limit=limit):
                return await self._history(limit)
            case ListJobs():
                return self._queue.jobs()
            case SweepJobs():
                return self._queue.sweep_expired()
            case ListPatterns():
                return self._extractor.catalog.snapshot()
            case AddPattern():
                return self._add_pattern(command)
            case RemovePattern(name=name):
                return self._extractor.catalog.remove(name)
        raise TypeError(f"Unsupported command: {type(command).__name__}")

    async def analyze(
        self, message: EmailMessage, *, force_refresh: bool = False
    ) -> AnalysisResult:
        """Analyse ``message`` with the current settings."""
        return await self._orchestrator.analyze(
            message, self.settings, force_refresh=force_refresh
        )

    def _offline(self) -> bool:
        if self._network is None:
            return False
        try:
            return self._network.is_offline()
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Network state unavailable, assuming offline: %s", exc)
            return True

    def _update_settings(self, changes: Mapping[str, Any]) -> AnalysisSettings:
        unknown = sorted(set(changes) - set(AnalysisSettings.model_fields))
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        merged = self.settings.model_copy(update=dict(changes))
        # model_copy skips validation; re-validate before accepting.
        updated = AnalysisSettings.model_validate(merged.model_dump())
        self._orchestrator.settings = updated
        LOGGER.info("Analysis settings updated: %s", ", ".join(sorted(changes)))
        return updated

    async def _history(self, limit: int | None) -> list[AnalysisResult]:
        entries = await self._cache.entries()
        if limit is not None:
            return entries[: max(limit, 0)]
        return entries

    def _add_pattern(self, command: AddPattern) -> ActionPattern:
        try:
            pattern = ActionPattern.compile(
                command.name,
                command.regex,
                priority=command.priority,
                category=command.category,
                requires_date=command.requires_date,
                description=command.description,
            )
        except re.error as exc:
            raise ValueError(f"Invalid pattern '{command.name}': {exc}") from exc
        self._extractor.catalog.add(pattern)
        LOGGER.info("Added action pattern %s", pattern.name)
        return pattern


__all__ = [
    "AddPattern",
    "AnalyzeMessage",
    "ClearCache",
    "Command",
    "CommandDispatcher",
    "ExtractActions",
    "GetAnalysisHistory",
    "GetSettings",
    "ListJobs",
    "ListPatterns",
    "RemovePattern",
    "SweepJobs",
    "UpdateSettings",
]
