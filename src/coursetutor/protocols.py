"""Protocol interfaces for swappable components.

The tutor service and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to script provider behaviour without any network
- The response cache backend (memory or SQLite) to be chosen by config
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from coursetutor.models.chat import CompletionRequest, ProviderSpec


class CompleterProtocol(Protocol):
    """Issues one completion call to one provider.

    Returns the response text (possibly empty). Raises on transport, HTTP or
    decoding failures.
    """

    async def complete(self, provider: ProviderSpec, request: CompletionRequest) -> str: ...


class ResponseCacheProtocol(Protocol):
    """Interface for the TTL response cache."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, content: str) -> None: ...

    async def cleanup_expired(self) -> int: ...
