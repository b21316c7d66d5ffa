"""Unit tests for coursetutor.client."""

from __future__ import annotations

import json

import httpx
import pytest
import respx
from fakes import make_provider

from coursetutor.client import (
    ChatCompletionClient,
    build_http_client,
    build_messages,
    build_payload,
    extract_content,
)
from coursetutor.config import ProviderSettings
from coursetutor.errors import ErrorCode, TutorError
from coursetutor.models.chat import ChatTurn, CompletionRequest

URL = "https://tutor.example.com/v1/chat/completions"


def _ok(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


# ---------------------------------------------------------------------------
# Payload building
# ---------------------------------------------------------------------------


class TestBuildPayload:
    def test_messages_order(self) -> None:
        request = CompletionRequest(
            system_prompt="sys",
            user_prompt="now",
            prior_turns=[
                ChatTurn(role="user", content="earlier question"),
                ChatTurn(role="assistant", content="earlier answer"),
            ],
        )
        assert build_messages(request) == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "earlier question"},
            {"role": "assistant", "content": "earlier answer"},
            {"role": "user", "content": "now"},
        ]

    def test_payload_fields(self, sample_request: CompletionRequest) -> None:
        payload = build_payload(make_provider("tutor"), sample_request)
        assert payload["model"] == "tutor-model"
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 1000
        assert payload["stream"] is False
        assert payload["messages"][0]["role"] == "system"


# ---------------------------------------------------------------------------
# extract_content
# ---------------------------------------------------------------------------


class TestExtractContent:
    def test_happy_path(self) -> None:
        assert extract_content({"choices": [{"message": {"content": "hi"}}]}) == "hi"

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {},
            {"choices": []},
            {"choices": ["nope"]},
            {"choices": [{}]},
            {"choices": [{"message": None}]},
            {"choices": [{"message": {"content": None}}]},
            {"choices": [{"message": {"content": 42}}]},
        ],
    )
    def test_missing_parts_give_empty_string(self, payload: object) -> None:
        assert extract_content(payload) == ""


# ---------------------------------------------------------------------------
# ChatCompletionClient.complete
# ---------------------------------------------------------------------------


class TestComplete:
    async def test_returns_message_content(self, sample_request: CompletionRequest) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=_ok("Mitochondria make ATP."))
            async with httpx.AsyncClient() as client:
                result = await ChatCompletionClient(client).complete(
                    make_provider("tutor"), sample_request
                )
        assert result == "Mitochondria make ATP."

    async def test_sends_bearer_key_and_body(self, sample_request: CompletionRequest) -> None:
        with respx.mock:
            route = respx.post(URL).mock(return_value=_ok("ok"))
            async with httpx.AsyncClient() as client:
                await ChatCompletionClient(client).complete(make_provider("tutor"), sample_request)
            request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer key-tutor"
        body = json.loads(request.content)
        assert body["model"] == "tutor-model"
        assert body["messages"][-1] == {
            "role": "user",
            "content": "What does the mitochondria do?",
        }

    async def test_trailing_slash_on_base_url(self, sample_request: CompletionRequest) -> None:
        provider = make_provider("tutor").model_copy(
            update={"base_url": "https://tutor.example.com/v1/"}
        )
        with respx.mock:
            route = respx.post(URL).mock(return_value=_ok("ok"))
            async with httpx.AsyncClient() as client:
                await ChatCompletionClient(client).complete(provider, sample_request)
        assert route.called

    async def test_missing_content_returns_empty(self, sample_request: CompletionRequest) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(200, json={"choices": []}))
            async with httpx.AsyncClient() as client:
                result = await ChatCompletionClient(client).complete(
                    make_provider("tutor"), sample_request
                )
        assert result == ""

    @pytest.mark.parametrize(
        ("status", "code", "recoverable"),
        [
            (401, ErrorCode.PROVIDER_AUTH_FAILED, False),
            (403, ErrorCode.PROVIDER_AUTH_FAILED, False),
            (429, ErrorCode.PROVIDER_RATE_LIMITED, True),
            (500, ErrorCode.PROVIDER_REQUEST_FAILED, True),
            (503, ErrorCode.PROVIDER_REQUEST_FAILED, True),
        ],
    )
    async def test_http_errors(
        self,
        status: int,
        code: ErrorCode,
        recoverable: bool,
        sample_request: CompletionRequest,
    ) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(status))
            async with httpx.AsyncClient() as client:
                with pytest.raises(TutorError) as exc_info:
                    await ChatCompletionClient(client).complete(
                        make_provider("tutor"), sample_request
                    )
        assert exc_info.value.code == code
        assert exc_info.value.recoverable is recoverable
        assert exc_info.value.provider == "tutor"

    async def test_network_error(self, sample_request: CompletionRequest) -> None:
        with respx.mock:
            respx.post(URL).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(TutorError) as exc_info:
                    await ChatCompletionClient(client).complete(
                        make_provider("tutor"), sample_request
                    )
        assert exc_info.value.code == ErrorCode.PROVIDER_REQUEST_FAILED
        assert exc_info.value.recoverable is True

    async def test_non_json_body(self, sample_request: CompletionRequest) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(TutorError) as exc_info:
                    await ChatCompletionClient(client).complete(
                        make_provider("tutor"), sample_request
                    )
        assert exc_info.value.code == ErrorCode.PROVIDER_BAD_RESPONSE


class TestBuildHttpClient:
    async def test_uses_configured_timeout(self) -> None:
        client = build_http_client(ProviderSettings(request_timeout_seconds=12))
        try:
            assert client.timeout.read == 12
            assert client.headers["User-Agent"] == "coursetutor/1.0"
        finally:
            await client.aclose()
