"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the correct transport (stdio or HTTP)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import coursetutor.tools.answer_question as t_answer
import coursetutor.tools.generate_notes as t_notes
import coursetutor.tools.generate_summary as t_summary
import coursetutor.tools.provide_clarification as t_clarify
from coursetutor import __version__
from coursetutor.cache import SqliteResponseCache, build_memory_cache
from coursetutor.client import ChatCompletionClient, build_http_client
from coursetutor.config import Settings
from coursetutor.errors import TutorError
from coursetutor.schedulers import run_cache_cleanup_scheduler
from coursetutor.state import AppState
from coursetutor.transport import run_http_server
from coursetutor.tutor import build_tutor_service

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable

    from coursetutor.protocols import ResponseCacheProtocol

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def _open_cache(
    settings: Settings,
) -> tuple[ResponseCacheProtocol, aiosqlite.Connection | None]:
    """Build the configured cache backend. The connection is returned for teardown."""
    if settings.cache.backend == "memory":
        return build_memory_cache(settings.cache), None

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    cache = SqliteResponseCache(db, timedelta(seconds=settings.cache.ttl_seconds))
    await cache.init_db()
    return cache, db


def _log_key_availability(settings: Settings) -> None:
    for name, endpoint in settings.providers.endpoints.items():
        log.info(
            "provider_endpoint_configured",
            endpoint=name,
            base_url=endpoint.base_url,
            key_present=bool(os.environ.get(endpoint.api_key_env)),
        )


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        transport=settings.server.transport,
        cache_backend=settings.cache.backend,
    )
    _log_key_availability(settings)

    http_client = build_http_client(settings.providers)
    cache, db = await _open_cache(settings)
    tutor = build_tutor_service(settings, ChatCompletionClient(http_client), cache)

    state = AppState(
        settings=settings,
        tutor=tutor,
        cache=cache,
        http_client=http_client,
        db=db,
    )

    cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info("server_started", version=__version__, transport=settings.server.transport)

    try:
        yield state
    finally:
        cache_cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cache_cleanup_task
        await http_client.aclose()
        if db is not None:
            await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("coursetutor", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg; set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: TutorError) -> CallToolResult:
    """Convert a TutorError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


async def _run_tool(tool: str, call: Awaitable[dict]) -> object:
    try:
        return await call
    except TutorError as exc:
        log.warning(
            "tool_error",
            tool=tool,
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool=tool, exc_info=True)
        raise


@mcp.tool()
async def generate_summary(chapter_title: str, chapter_content: str, ctx: Context) -> object:
    """Summarise a chapter as a short summary, key points and key concepts."""
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool(
        "generate_summary", t_summary.handle(chapter_title, chapter_content, state)
    )


@mcp.tool()
async def answer_question(
    question: str,
    chapter_title: str,
    chapter_content: str,
    ctx: Context,
    conversation_history: list[dict] | None = None,
) -> object:
    """Answer a student's question about a chapter.

    conversation_history is a list of {"role": "user"|"assistant", "content": str}
    turns, oldest first. Only the last four are sent to the model.
    """
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool(
        "answer_question",
        t_answer.handle(question, chapter_title, chapter_content, conversation_history, state),
    )


@mcp.tool()
async def generate_notes(
    chapter_title: str,
    chapter_content: str,
    ctx: Context,
    note_type: str = "ai_generated",
    custom_prompt: str | None = None,
) -> object:
    """Generate study notes for a chapter.

    note_type is one of manual, ai_generated, summary, key_points. A non-blank
    custom_prompt replaces the note type's built-in instructions.
    """
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool(
        "generate_notes",
        t_notes.handle(chapter_title, chapter_content, note_type, custom_prompt, state),
    )


@mcp.tool()
async def provide_clarification(
    request: str, chapter_title: str, chapter_content: str, ctx: Context
) -> object:
    """Explain a confusing topic from a chapter in simpler terms, with examples."""
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool(
        "provide_clarification",
        t_clarify.handle(request, chapter_title, chapter_content, state),
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()

    if settings.server.transport == "http":
        _setup_logging(settings)
        run_http_server(mcp, settings)
        return

    mcp.run()


if __name__ == "__main__":
    main()
