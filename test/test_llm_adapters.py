"""
Unit tests for the LLM adapters (sync path, in-memory transport).
"""

from __future__ import annotations

import httpx
import pytest

from voice_booking.dialogue.llm.anthropic_adapter import ANTHROPIC_API_VERSION, AnthropicAdapter
from voice_booking.dialogue.llm.factory import create_llm_gateway
from voice_booking.dialogue.llm.models import (
    ChatMessage,
    ChatRequest,
    LLMAuthenticationError,
    LLMProvider,
    LLMProviderError,
    LLMRateLimitError,
    LLMTimeoutError,
    MessageRole,
)
from voice_booking.dialogue.llm.openai_adapter import OpenAIAdapter


class FakeResponse:
    def __init__(self, status_code: int, json_data: dict | None = None, headers: dict | None = None) -> None:
        self.status_code = status_code
        self._json_data = json_data or {}
        self.headers = headers or {}
        self.content = b"1"
        self.text = "x"

    def json(self) -> dict:
        return self._json_data


class FakeTransport:
    def __init__(self, responses: list[FakeResponse] | None = None, raise_exc: Exception | None = None) -> None:
        self._responses = responses or []
        self._raise_exc = raise_exc
        self.calls: list[dict] = []

    def post(self, url: str, *, json: dict, headers: dict, timeout: float) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self._raise_exc is not None:
            raise self._raise_exc
        return self._responses.pop(0)


@pytest.fixture
def sample_request() -> ChatRequest:
    return ChatRequest(
        messages=[
            ChatMessage(role=MessageRole.SYSTEM, content="You are calling a salon."),
            ChatMessage(role=MessageRole.USER, content="Hello, Shear Joy."),
        ],
        max_tokens=400,
        temperature=0.4,
        correlation_id="CA_TEST",
    )


@pytest.fixture
def anthropic_body() -> dict:
    return {
        "id": "msg_123",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": "Hi! Do you have anything Friday?"}],
        "model": "claude-3-5-sonnet-20241022",
        "usage": {"input_tokens": 10, "output_tokens": 20},
    }


class TestAnthropicAdapter:
    def test_properties(self) -> None:
        adapter = AnthropicAdapter(api_key="k", default_model="claude-test")
        assert adapter.provider == LLMProvider.ANTHROPIC
        assert adapter.default_model == "claude-test"

    def test_successful_completion(self, sample_request: ChatRequest, anthropic_body: dict) -> None:
        transport = FakeTransport(responses=[FakeResponse(200, anthropic_body)])
        adapter = AnthropicAdapter(api_key="test-key", transport=transport)

        response = adapter.chat_completion_sync(sample_request)

        assert response.content == "Hi! Do you have anything Friday?"
        assert response.provider == LLMProvider.ANTHROPIC
        assert response.correlation_id == "CA_TEST"
        assert response.usage == {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}

        sent = transport.calls[0]
        assert sent["url"].endswith("/messages")
        assert sent["headers"]["x-api-key"] == "test-key"
        assert sent["headers"]["anthropic-version"] == ANTHROPIC_API_VERSION
        assert sent["json"]["system"] == "You are calling a salon."
        assert sent["json"]["messages"] == [{"role": "user", "content": "Hello, Shear Joy."}]
        assert sent["json"]["max_tokens"] == 400

    def test_authentication_error(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(responses=[FakeResponse(401, {"error": {"message": "bad key"}})])
        adapter = AnthropicAdapter(api_key="bad", transport=transport)

        with pytest.raises(LLMAuthenticationError):
            adapter.chat_completion_sync(sample_request)

    def test_rate_limit_retries_then_succeeds(self, sample_request: ChatRequest, anthropic_body: dict) -> None:
        sleeps: list[float] = []
        transport = FakeTransport(
            responses=[
                FakeResponse(429, headers={"Retry-After": "0.5"}),
                FakeResponse(200, anthropic_body),
            ]
        )
        adapter = AnthropicAdapter(api_key="k", max_retries=3, transport=transport, sleep_func=sleeps.append)

        response = adapter.chat_completion_sync(sample_request)

        assert response.content.startswith("Hi!")
        assert sleeps == [0.5]
        assert len(transport.calls) == 2

    def test_rate_limit_exhausted(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(responses=[FakeResponse(429), FakeResponse(429)])
        adapter = AnthropicAdapter(api_key="k", max_retries=2, transport=transport, sleep_func=lambda _: None)

        with pytest.raises(LLMRateLimitError):
            adapter.chat_completion_sync(sample_request)

    def test_server_error_after_retries(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(
            responses=[
                FakeResponse(529, {"error": {"message": "overloaded"}}),
                FakeResponse(500, {"error": {"message": "internal"}}),
            ]
        )
        adapter = AnthropicAdapter(api_key="k", max_retries=2, transport=transport, sleep_func=lambda _: None)

        with pytest.raises(LLMProviderError, match="internal"):
            adapter.chat_completion_sync(sample_request)

    def test_timeout(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(raise_exc=httpx.ReadTimeout("slow"))
        adapter = AnthropicAdapter(api_key="k", transport=transport)

        with pytest.raises(LLMTimeoutError):
            adapter.chat_completion_sync(sample_request)

    def test_connection_error_retried_then_provider_error(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(raise_exc=httpx.ConnectError("down"))
        adapter = AnthropicAdapter(api_key="k", max_retries=3, transport=transport, sleep_func=lambda _: None)

        with pytest.raises(LLMProviderError) as exc_info:
            adapter.chat_completion_sync(sample_request)

        assert len(transport.calls) == 3
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    def test_unexpected_body_is_provider_error(self, sample_request: ChatRequest) -> None:
        transport = FakeTransport(responses=[FakeResponse(200, {"unexpected": True})])
        adapter = AnthropicAdapter(api_key="k", transport=transport)

        with pytest.raises(LLMProviderError):
            adapter.chat_completion_sync(sample_request)

    @pytest.mark.asyncio
    async def test_async_entrypoint(self, sample_request: ChatRequest, anthropic_body: dict) -> None:
        transport = FakeTransport(responses=[FakeResponse(200, anthropic_body)])
        adapter = AnthropicAdapter(api_key="k", transport=transport)

        response = await adapter.chat_completion(sample_request)

        assert response.content == "Hi! Do you have anything Friday?"


class TestOpenAIAdapter:
    def test_successful_completion(self, sample_request: ChatRequest) -> None:
        body = {
            "choices": [{"message": {"role": "assistant", "content": "Hello!"}}],
            "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
        }
        transport = FakeTransport(responses=[FakeResponse(200, body)])
        adapter = OpenAIAdapter(api_key="sk-test", transport=transport)

        response = adapter.chat_completion_sync(sample_request)

        assert response.content == "Hello!"
        assert response.usage["total_tokens"] == 7
        sent = transport.calls[0]
        assert sent["url"].endswith("/chat/completions")
        assert sent["headers"]["Authorization"] == "Bearer sk-test"
        # OpenAI keeps the system prompt inline.
        assert sent["json"]["messages"][0] == {"role": "system", "content": "You are calling a salon."}


class TestFactory:
    def test_creates_anthropic_adapter(self) -> None:
        gateway = create_llm_gateway("anthropic", api_key="k")

        assert isinstance(gateway, AnthropicAdapter)

    def test_creates_openai_adapter_with_model(self) -> None:
        gateway = create_llm_gateway(LLMProvider.OPENAI, api_key="k", model="gpt-test")

        assert isinstance(gateway, OpenAIAdapter)
        assert gateway.default_model == "gpt-test"

    def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(LLMProviderError, match="API key required"):
            create_llm_gateway("anthropic")

    def test_api_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        gateway = create_llm_gateway("openai")

        assert isinstance(gateway, OpenAIAdapter)

    def test_unsupported_provider(self) -> None:
        with pytest.raises(LLMProviderError, match="Unsupported"):
            create_llm_gateway("unknown", api_key="k")
