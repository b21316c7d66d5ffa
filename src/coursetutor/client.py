"""OpenAI-compatible chat-completion client.

Every provider in every chain is reached through a single ChatCompletionClient
shared across tool calls. The client receives an httpx.AsyncClient via
constructor injection; the server lifespan owns the client lifecycle.

One call, one provider, no retries. Retrying is the chain's job.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from coursetutor.errors import ErrorCode, TutorError

if TYPE_CHECKING:
    from coursetutor.config import ProviderSettings
    from coursetutor.models.chat import CompletionRequest, ProviderSpec

log = structlog.get_logger()


def build_http_client(settings: ProviderSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    timeout = settings.request_timeout_seconds if settings is not None else 30.0
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": "coursetutor/1.0"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def build_messages(request: CompletionRequest) -> list[dict[str, str]]:
    """System prompt, then the recent history, then the new user turn."""
    messages = [{"role": "system", "content": request.system_prompt}]
    messages.extend({"role": t.role, "content": t.content} for t in request.prior_turns)
    messages.append({"role": "user", "content": request.user_prompt})
    return messages


def build_payload(provider: ProviderSpec, request: CompletionRequest) -> dict[str, Any]:
    return {
        "model": provider.model_id,
        "messages": build_messages(request),
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "stream": False,
    }


def extract_content(payload: Any) -> str:
    """Return ``choices[0].message.content`` or an empty string if any part is absent."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def _status_error(provider: ProviderSpec, status_code: int) -> TutorError:
    if status_code in (401, 403):
        return TutorError(
            code=ErrorCode.PROVIDER_AUTH_FAILED,
            message=f"HTTP {status_code} from {provider.name}",
            suggestion="Check the API key configured for this provider's endpoint.",
            recoverable=False,
            provider=provider.name,
        )
    if status_code == 429:
        return TutorError(
            code=ErrorCode.PROVIDER_RATE_LIMITED,
            message=f"HTTP 429 from {provider.name}",
            suggestion="The provider's free tier is exhausted; try again later.",
            recoverable=True,
            provider=provider.name,
        )
    return TutorError(
        code=ErrorCode.PROVIDER_REQUEST_FAILED,
        message=f"HTTP {status_code} from {provider.name}",
        suggestion="The provider may be temporarily unavailable.",
        recoverable=True,
        provider=provider.name,
    )


class ChatCompletionClient:
    """Sends chat-completion requests to OpenAI-compatible endpoints."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def complete(self, provider: ProviderSpec, request: CompletionRequest) -> str:
        """POST ``{base_url}/chat/completions`` and return the message text.

        Returns an empty string when the response carries no content. Raises
        TutorError on network errors, non-2xx responses and non-JSON bodies.
        """
        url = provider.base_url.rstrip("/") + "/chat/completions"
        headers = {"Authorization": f"Bearer {provider.api_key}"}
        start = time.monotonic()

        try:
            response = await self._client.post(
                url, json=build_payload(provider, request), headers=headers
            )
        except httpx.HTTPError as exc:
            raise TutorError(
                code=ErrorCode.PROVIDER_REQUEST_FAILED,
                message=f"Network error calling {provider.name}: {exc}",
                suggestion="The provider may be temporarily unavailable.",
                recoverable=True,
                provider=provider.name,
            ) from exc

        if not response.is_success:
            raise _status_error(provider, response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TutorError(
                code=ErrorCode.PROVIDER_BAD_RESPONSE,
                message=f"Non-JSON response from {provider.name}",
                suggestion="The endpoint may not be OpenAI-compatible.",
                recoverable=True,
                provider=provider.name,
            ) from exc

        content = extract_content(payload)
        log.debug(
            "completion_received",
            provider=provider.name,
            model=provider.model_id,
            status_code=response.status_code,
            content_length=len(content),
            latency_ms=round((time.monotonic() - start) * 1000),
        )
        return content
