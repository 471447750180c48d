"""
Anthropic Messages API adapter.
"""

from __future__ import annotations

from typing import Any, Callable

from voice_booking.dialogue.llm.gateway import BaseLLMAdapter, SyncHttpTransport
from voice_booking.dialogue.llm.models import ChatRequest, LLMProvider, MessageRole

ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_API_VERSION = "2023-06-01"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"


class AnthropicAdapter(BaseLLMAdapter):
    """Anthropic adapter implementing the LLM gateway interface."""

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_url: str | None = None,
        transport: SyncHttpTransport | None = None,
        sleep_func: Callable[[float], None] | None = None,
    ) -> None:
        super().__init__(
            api_key,
            default_model,
            timeout_seconds,
            max_retries,
            transport=transport,
            sleep_func=sleep_func,
        )
        self._messages_endpoint = f"{(base_url or ANTHROPIC_API_BASE).rstrip('/')}/messages"

    @property
    def provider(self) -> LLMProvider:
        return LLMProvider.ANTHROPIC

    def _build_http_request(
        self, request: ChatRequest, model: str
    ) -> tuple[str, dict[str, Any], dict[str, str]]:
        # Anthropic takes the system prompt as a top-level field, not a message.
        system_parts = [m.content for m in request.messages if m.role == MessageRole.SYSTEM]
        messages = [
            {"role": m.role.value, "content": m.content}
            for m in request.messages
            if m.role != MessageRole.SYSTEM
        ]

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "Content-Type": "application/json",
        }
        return self._messages_endpoint, payload, headers

    def _read_reply(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        text = "".join(
            block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
        )
        usage = data.get("usage") or {}
        input_tokens = int(usage.get("input_tokens", 0))
        output_tokens = int(usage.get("output_tokens", 0))
        return text, {
            "prompt_tokens": input_tokens,
            "completion_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        }
