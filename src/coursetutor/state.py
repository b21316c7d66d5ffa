"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiosqlite
    import httpx

    from coursetutor.config import Settings
    from coursetutor.protocols import ResponseCacheProtocol
    from coursetutor.tutor import TutorService


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    tutor: TutorService | None = None
    cache: ResponseCacheProtocol | None = None
    http_client: httpx.AsyncClient | None = None
    db: aiosqlite.Connection | None = None  # Only set for the sqlite cache backend
