"""Tests for the in-memory analysis cache."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from inbox_sage.core.models import AnalysisResult
from inbox_sage.storage import InMemoryAnalysisCache

START = datetime(2024, 12, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _result(message_id: str) -> AnalysisResult:
    return AnalysisResult(
        message_id=message_id,
        summary=f"summary {message_id}",
        action_items=(),
        suggested_replies=(),
        grammar_issues=(),
        sentiment="neutral",
        priority="low",
        categories=("general",),
        extracted_dates=(),
        created_at=START,
        model_used="local",
    )


def test_get_returns_stored_result_until_expiry() -> None:
    clock = FakeClock()
    cache = InMemoryAnalysisCache(ttl_seconds=60, clock=clock)
    result = _result("a")

    async def scenario() -> tuple[AnalysisResult | None, AnalysisResult | None]:
        await cache.set("a", result)
        fresh = await cache.get("a")
        clock.advance(61)
        stale = await cache.get("a")
        return fresh, stale

    fresh, stale = asyncio.run(scenario())

    assert fresh is result
    assert stale is None
    assert cache.size() == 0


def test_oldest_entries_are_evicted_when_full() -> None:
    cache = InMemoryAnalysisCache(max_entries=2)

    async def scenario() -> None:
        await cache.set("a", _result("a"))
        await cache.set("b", _result("b"))
        await cache.set("a", _result("a"))
        await cache.set("c", _result("c"))

    asyncio.run(scenario())

    assert cache.size() == 2
    assert asyncio.run(cache.get("b")) is None
    assert asyncio.run(cache.get("a")) is not None


def test_invalidate_single_and_all() -> None:
    cache = InMemoryAnalysisCache()

    async def scenario() -> tuple[int, int, int]:
        for message_id in "abc":
            await cache.set(message_id, _result(message_id))
        one = await cache.invalidate("a")
        missing = await cache.invalidate("zzz")
        rest = await cache.invalidate()
        return one, missing, rest

    assert asyncio.run(scenario()) == (1, 0, 2)
    assert cache.size() == 0


def test_entries_are_newest_first_and_skip_expired() -> None:
    clock = FakeClock()
    cache = InMemoryAnalysisCache(ttl_seconds=100, clock=clock)

    async def scenario() -> list[AnalysisResult]:
        await cache.set("old", _result("old"))
        clock.advance(50)
        await cache.set("mid", _result("mid"))
        clock.advance(10)
        await cache.set("new", _result("new"))
        clock.advance(45)
        return await cache.entries()

    entries = asyncio.run(scenario())

    assert [entry.message_id for entry in entries] == ["new", "mid"]


def test_cleanup_expired_removes_stale_entries() -> None:
    clock = FakeClock()
    cache = InMemoryAnalysisCache(ttl_seconds=10, clock=clock)

    async def scenario() -> int:
        await cache.set("a", _result("a"))
        clock.advance(5)
        await cache.set("b", _result("b"))
        clock.advance(6)
        return await cache.cleanup_expired()

    assert asyncio.run(scenario()) == 1
    assert cache.size() == 1
