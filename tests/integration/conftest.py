"""Integration test fixtures.

Provides a fully wired AppState: the real ChatCompletionClient over an httpx
client (mock responses with respx), an in-memory response cache and short
provider chains whose endpoints live under example.com.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import httpx
import pytest
from fakes import make_chain

from coursetutor.client import ChatCompletionClient
from coursetutor.config import Settings
from coursetutor.state import AppState
from coursetutor.tutor import TutorService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from fakes import ManualClock

    from coursetutor.cache import InMemoryResponseCache


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Baseline env dict for subprocess-based MCP integration tests.

    Forces stdio transport and the memory cache. The subprocess runs with
    ``tmp_path`` as its working directory, where a coursetutor.yaml points
    every endpoint at an unroutable address so no test reaches a real provider.
    """
    (tmp_path / "coursetutor.yaml").write_text(
        "providers:\n"
        "  endpoints:\n"
        "    openrouter: {base_url: 'http://127.0.0.1:1', api_key_env: OPENROUTER_API_KEY}\n"
        "    gemini: {base_url: 'http://127.0.0.1:1', api_key_env: GEMINI_API_KEY}\n"
        "    openai: {base_url: 'http://127.0.0.1:1', api_key_env: OPENAI_API_KEY}\n",
        encoding="utf-8",
    )
    env = os.environ.copy()
    env["COURSETUTOR__SERVER__TRANSPORT"] = "stdio"
    env["COURSETUTOR__CACHE__BACKEND"] = "memory"
    env["COURSETUTOR__CACHE__DB_PATH"] = str(tmp_path / "responses.db")
    return env


@pytest.fixture()
async def app_state(
    memory_cache: InMemoryResponseCache, clock: ManualClock
) -> AsyncGenerator[AppState, None]:
    """Full AppState wired for tool-handler integration tests."""
    async with httpx.AsyncClient() as client:
        tutor = TutorService(
            completer=ChatCompletionClient(client),
            cache=memory_cache,
            question_chain=make_chain("question", "q1", "q2", timeout_seconds=2.0),
            notes_chain=make_chain("notes", "n1", "n2", timeout_seconds=2.0),
            summary_chain=make_chain("summary", "s1", "s2", timeout_seconds=2.0),
            clock=clock,
        )
        yield AppState(
            settings=Settings(),
            tutor=tutor,
            cache=memory_cache,
            http_client=client,
        )
