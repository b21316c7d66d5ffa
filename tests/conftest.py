"""Shared test fixtures for the coursetutor test suite."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import aiosqlite
import pytest
from fakes import ManualClock

from coursetutor.cache import InMemoryResponseCache, SqliteResponseCache
from coursetutor.models.chat import CompletionRequest

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def memory_cache(clock: ManualClock) -> InMemoryResponseCache:
    return InMemoryResponseCache(timedelta(minutes=5), max_entries=100, clock=clock)


@pytest.fixture()
def sample_request() -> CompletionRequest:
    return CompletionRequest(
        system_prompt="You are a tutor.",
        user_prompt="What does the mitochondria do?",
    )


@pytest.fixture()
async def sqlite_cache(clock: ManualClock) -> AsyncGenerator[SqliteResponseCache, None]:
    async with aiosqlite.connect(":memory:") as db:
        cache = SqliteResponseCache(db, timedelta(minutes=5), clock=clock)
        await cache.init_db()
        yield cache
