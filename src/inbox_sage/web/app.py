"""FastAPI application exposing the analysis core as a JSON API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status as http_status
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inbox_sage.commands import (
    AddPattern,
    AnalyzeMessage,
    ClearCache,
    CommandDispatcher,
    ExtractActions,
    GetAnalysisHistory,
    GetSettings,
    ListJobs,
    ListPatterns,
    RemovePattern,
    SweepJobs,
    UpdateSettings,
)
from inbox_sage.core import AppSettings, LocalProcessingDisabled, load_app_settings
from inbox_sage.core.models import Priority
from inbox_sage.serialization import (
    MessagePayload,
    serialize_analysis,
    serialize_extraction,
    serialize_job,
    serialize_pattern,
)
from inbox_sage.services import AssistantServices, build_services

LOGGER = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeRequest(_CamelModel):
    message: MessagePayload
    force_refresh: bool = False


class ExtractRequest(_CamelModel):
    message: MessagePayload
    anchor: datetime | None = None


class PatternRequest(_CamelModel):
    name: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    priority: Priority = "medium"
    category: str = Field(default="general", min_length=1)
    requires_date: bool = False
    description: str = ""


def create_app(
    settings: AppSettings | None = None,
    services: AssistantServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    assistant = services or build_services(settings or load_app_settings())

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        assistant.start()
        try:
            yield
        finally:
            await assistant.aclose()
            LOGGER.info("Background tasks stopped")

    app = FastAPI(title="Inbox Sage", lifespan=lifespan)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.state.services = assistant

    def get_dispatcher(request: Request) -> CommandDispatcher:
        return request.app.state.services.dispatcher

    @app.exception_handler(LocalProcessingDisabled)
    async def local_processing_disabled(
        _request: Request, exc: LocalProcessingDisabled
    ) -> JSONResponse:
        return JSONResponse(
            status_code=http_status.HTTP_409_CONFLICT,
            content={"error": str(exc), "messageId": exc.message_id},
        )

    @app.post("/api/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        """Analyse a message, escalating through the configured tiers."""
        result = await dispatcher.dispatch(
            AnalyzeMessage(payload.message.to_model(), payload.force_refresh)
        )
        return serialize_analysis(result)

    @app.post("/api/extract")
    async def extract(
        payload: ExtractRequest,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        """Extract action items and dates without a full analysis."""
        result = await dispatcher.dispatch(
            ExtractActions(payload.message.to_model(), payload.anchor)
        )
        return serialize_extraction(result)

    @app.get("/api/settings")
    async def get_settings(
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        settings_model = await dispatcher.dispatch(GetSettings())
        return settings_model.model_dump()

    @app.patch("/api/settings")
    async def update_settings(
        changes: dict[str, Any],
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        """Apply a partial settings update."""
        try:
            updated = await dispatcher.dispatch(UpdateSettings(changes))
        except ValueError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        return updated.model_dump()

    @app.delete("/api/cache")
    async def clear_cache(
        message_id: str | None = None,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        removed = await dispatcher.dispatch(ClearCache(message_id))
        return {"removed": removed}

    @app.get("/api/history")
    async def history(
        limit: int | None = None,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        """Cached analyses, newest first."""
        entries = await dispatcher.dispatch(GetAnalysisHistory(limit))
        return {"analyses": [serialize_analysis(result) for result in entries]}

    @app.get("/api/jobs")
    async def list_jobs(
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        jobs = await dispatcher.dispatch(ListJobs())
        return {"jobs": [serialize_job(job) for job in jobs]}

    @app.post("/api/jobs/sweep")
    async def sweep_jobs(
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        removed = await dispatcher.dispatch(SweepJobs())
        return {"removed": removed}

    @app.get("/api/patterns")
    async def list_patterns(
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        patterns = await dispatcher.dispatch(ListPatterns())
        return {"patterns": [serialize_pattern(pattern) for pattern in patterns]}

    @app.post("/api/patterns", status_code=http_status.HTTP_201_CREATED)
    async def add_pattern(
        payload: PatternRequest,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        """Append a custom action pattern to the catalog."""
        names = {pattern.name for pattern in await dispatcher.dispatch(ListPatterns())}
        if payload.name in names:
            raise HTTPException(
                status_code=http_status.HTTP_409_CONFLICT,
                detail=f"Pattern '{payload.name}' already exists",
            )
        try:
            pattern = await dispatcher.dispatch(
                AddPattern(
                    name=payload.name,
                    regex=payload.pattern,
                    priority=payload.priority,
                    category=payload.category,
                    requires_date=payload.requires_date,
                    description=payload.description,
                )
            )
        except ValueError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        return serialize_pattern(pattern)

    @app.delete("/api/patterns/{name}")
    async def remove_pattern(
        name: str,
        dispatcher: CommandDispatcher = Depends(get_dispatcher),  # noqa: B008
    ) -> dict[str, Any]:
        removed = await dispatcher.dispatch(RemovePattern(name))
        if not removed:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND,
                detail=f"Pattern '{name}' not found",
            )
        return {"removed": True}

    return app


__all__ = ["create_app"]
