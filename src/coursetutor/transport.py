"""Streamable HTTP transport for the tutoring tools.

The HTTP app is wrapped in a pure ASGI guard (not BaseHTTPMiddleware) so SSE
streaming responses are never buffered.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcp.server.fastmcp import FastMCP
    from starlette.types import ASGIApp, Receive, Scope, Send

    from coursetutor.config import Settings

log = structlog.get_logger()

SUPPORTED_PROTOCOL_VERSIONS: frozenset[str] = frozenset({"2025-11-25", "2025-06-18", "2025-03-26"})


def normalise_origin(origin: str) -> str:
    """Reduce an Origin header to ``scheme://host``; ports are not significant."""
    parsed = urlparse(origin.strip().lower())
    if not parsed.scheme or not parsed.hostname:
        return ""
    return f"{parsed.scheme}://{parsed.hostname}"


class HTTPGuardMiddleware:
    """Rejects HTTP requests that fail any of these checks, in order:

    1. Bearer key (when auth is enabled)          -> 401
    2. Origin header not in the allowed set        -> 403
    3. Unknown MCP-Protocol-Version header         -> 400

    Requests without an Origin header (non-browser clients) pass check 2.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        auth_key: str | None,
        allowed_origins: Iterable[str] = (),
    ) -> None:
        self.app = app
        self.auth_key = auth_key
        self.allowed_origins = frozenset(
            o for o in (normalise_origin(x) for x in allowed_origins) if o
        )

    def _authorised(self, headers: Headers) -> bool:
        if self.auth_key is None:
            return True
        scheme, _, token = headers.get("authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            return False
        return secrets.compare_digest(token.encode(), self.auth_key.encode())

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)

        if not self._authorised(headers):
            await PlainTextResponse("Unauthorized", status_code=401)(scope, receive, send)
            return

        origin = headers.get("origin")
        if origin is not None and normalise_origin(origin) not in self.allowed_origins:
            log.warning("http_origin_rejected", origin=origin)
            await PlainTextResponse("Forbidden", status_code=403)(scope, receive, send)
            return

        proto_version = headers.get("mcp-protocol-version")
        if proto_version and proto_version not in SUPPORTED_PROTOCOL_VERSIONS:
            await PlainTextResponse(
                f"Unsupported protocol version: {proto_version}",
                status_code=400,
            )(scope, receive, send)
            return

        await self.app(scope, receive, send)


def resolve_auth_key(settings: Settings) -> str | None:
    """Configured key, a generated one when auth is on without a key, or None when off."""
    if not settings.server.auth_enabled:
        log.warning("http_auth_disabled")
        return None
    if settings.server.auth_key:
        return settings.server.auth_key
    auth_key = secrets.token_urlsafe(32)
    log.warning("http_auth_key_auto_generated", auth_key=auth_key)
    return auth_key


def run_http_server(mcp: FastMCP, settings: Settings) -> None:
    """Start the MCP server with Streamable HTTP transport."""
    guarded_app = HTTPGuardMiddleware(
        mcp.streamable_http_app(),
        auth_key=resolve_auth_key(settings),
        allowed_origins=settings.server.allowed_origins,
    )
    uvicorn.run(
        guarded_app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # structlog handles logging
    )
