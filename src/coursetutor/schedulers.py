"""Background sweep of stale response-cache entries.

Reads already treat stale entries as misses; the sweep only bounds memory
and disk use for long-running servers.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from coursetutor.state import AppState

log = structlog.get_logger()


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Sweep at startup and (HTTP mode) on the configured interval."""
    interval_seconds = state.settings.cache.cleanup_interval_minutes * 60

    # Both transports: sweep once at startup.
    await _sweep(state)

    if state.settings.server.transport != "http":
        return

    # HTTP long-running mode: repeat on the configured interval.
    while True:
        await asyncio.sleep(interval_seconds)
        await _sweep(state)


async def _sweep(state: AppState) -> None:
    if state.cache is None:
        return
    try:
        await state.cache.cleanup_expired()
    except Exception:
        log.warning("cache_cleanup_scheduler_error", exc_info=True)
