"""
OpenAI chat completions adapter (text only).
"""

from __future__ import annotations

from typing import Any, Callable

from voice_booking.dialogue.llm.gateway import BaseLLMAdapter, SyncHttpTransport
from voice_booking.dialogue.llm.models import ChatRequest, LLMProvider

OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"


class OpenAIAdapter(BaseLLMAdapter):
    """OpenAI HTTP adapter."""

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_OPENAI_MODEL,
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
        self._chat_endpoint = f"{(base_url or OPENAI_API_BASE).rstrip('/')}/chat/completions"

    @property
    def provider(self) -> LLMProvider:
        return LLMProvider.OPENAI

    def _build_http_request(
        self, request: ChatRequest, model: str
    ) -> tuple[str, dict[str, Any], dict[str, str]]:
        payload = {
            "model": model,
            "messages": [{"role": m.role.value, "content": m.content} for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        return self._chat_endpoint, payload, headers

    def _read_reply(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        content = data["choices"][0]["message"]["content"] or ""
        usage = data.get("usage") or {}
        return content, {
            key: int(usage.get(key, 0))
            for key in ("prompt_tokens", "completion_tokens", "total_tokens")
        }
