"""
LLM Gateway interface definition.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Protocol, runtime_checkable

import anyio
import httpx

from voice_booking.dialogue.llm.models import (
    ChatRequest,
    ChatResponse,
    LLMAuthenticationError,
    LLMProvider,
    LLMProviderError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from voice_booking.shared.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})


@runtime_checkable
class LLMGateway(Protocol):
    """Protocol for LLM gateway implementations.

    Defines the interface for chat completion that all provider
    adapters must implement.
    """

    @property
    def provider(self) -> LLMProvider:
        """Get the LLM provider type."""
        ...

    @property
    def default_model(self) -> str:
        """Get the default model for this provider."""
        ...

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        """Execute a chat completion request.

        Args:
            request: The chat request containing messages and parameters.

        Returns:
            ChatResponse with the raw completion text.

        Raises:
            LLMTimeoutError: If the request times out.
            LLMRateLimitError: If rate limited by the provider.
            LLMAuthenticationError: If authentication fails.
            LLMProviderError: For other provider errors.
        """
        ...


class SyncHttpTransport(Protocol):
    """Minimal sync transport protocol (in-memory fakeable)."""

    def post(
        self,
        url: str,
        *,
        json: dict[str, Any],
        headers: dict[str, str],
        timeout: float,
    ) -> Any: ...


class BaseLLMAdapter(ABC):
    """Base class for LLM adapter implementations.

    Owns the HTTP round trip: transport selection, retry with exponential
    backoff on 429/5xx and mapping of failures to typed LLM errors.
    Subclasses build the provider payload and read the reply text.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        transport: SyncHttpTransport | None = None,
        sleep_func: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: API key for the provider.
            default_model: Default model to use.
            timeout_seconds: Request timeout in seconds.
            max_retries: Total attempts for a retryable failure.
            transport: Optional object with a ``post`` method replacing httpx.
            sleep_func: Optional replacement for ``time.sleep`` between retries.
        """
        self._api_key = api_key
        self._default_model = default_model
        self._timeout_seconds = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._transport = transport
        self._sleep_func = sleep_func or time.sleep

    @property
    @abstractmethod
    def provider(self) -> LLMProvider:
        """Get the LLM provider type."""
        raise NotImplementedError

    @property
    def default_model(self) -> str:
        """Get the default model for this provider."""
        return self._default_model

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        """Run the blocking completion in a worker thread."""
        return await anyio.to_thread.run_sync(self.chat_completion_sync, request)

    def chat_completion_sync(self, request: ChatRequest) -> ChatResponse:
        start_time = time.monotonic()
        model = request.model or self._default_model
        url, payload, headers = self._build_http_request(request, model)

        logger.info(
            "LLM chat completion request",
            extra={
                "correlation_id": request.correlation_id,
                "provider": self.provider.value,
                "model": model,
                "message_count": len(request.messages),
            },
        )

        response = self._post_with_retry(url, payload, headers, request.correlation_id)
        latency_ms = (time.monotonic() - start_time) * 1000

        try:
            data = response.json()
            content, usage = self._read_reply(data)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMProviderError(
                f"Unexpected {self.provider.value} response shape",
                correlation_id=request.correlation_id,
                provider=self.provider,
                original_error=e,
            ) from e

        logger.info(
            "LLM chat completion success",
            extra={
                "correlation_id": request.correlation_id,
                "provider": self.provider.value,
                "model": model,
                "latency_ms": round(latency_ms, 1),
            },
        )

        return ChatResponse(
            content=content,
            model=model,
            provider=self.provider,
            usage=usage,
            correlation_id=request.correlation_id,
            latency_ms=latency_ms,
        )

    @abstractmethod
    def _build_http_request(
        self, request: ChatRequest, model: str
    ) -> tuple[str, dict[str, Any], dict[str, str]]:
        """Return (url, json payload, headers) for the provider API."""
        raise NotImplementedError

    @abstractmethod
    def _read_reply(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        """Extract (reply text, token usage) from a successful response body."""
        raise NotImplementedError

    def _post_with_retry(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        correlation_id: str,
    ) -> Any:
        backoff = 1.0
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            is_last = attempt == self._max_retries
            try:
                response = self._post(url, payload, headers)
            except (httpx.TimeoutException, TimeoutError) as e:
                logger.error(
                    "LLM request timeout",
                    extra={"correlation_id": correlation_id, "provider": self.provider.value},
                )
                raise LLMTimeoutError(
                    f"Request timed out after {self._timeout_seconds}s",
                    correlation_id=correlation_id,
                    provider=self.provider,
                    original_error=e,
                ) from e
            except httpx.HTTPError as e:
                last_error = e
                if is_last:
                    break
                logger.warning(
                    "LLM request failed, retrying",
                    extra={"correlation_id": correlation_id, "attempt": attempt, "error": str(e)},
                )
                self._sleep_func(backoff)
                backoff *= 2
                continue

            status = response.status_code
            if status == 200:
                return response

            if status in (401, 403):
                logger.error(
                    "LLM authentication failed",
                    extra={"correlation_id": correlation_id, "provider": self.provider.value},
                )
                raise LLMAuthenticationError(
                    "Invalid API key",
                    correlation_id=correlation_id,
                    provider=self.provider,
                )

            if status in RETRYABLE_STATUS_CODES and not is_last:
                delay = _retry_after(response, backoff)
                logger.warning(
                    "LLM provider busy, retrying",
                    extra={
                        "correlation_id": correlation_id,
                        "status_code": status,
                        "attempt": attempt,
                        "retry_after": delay,
                    },
                )
                self._sleep_func(delay)
                backoff *= 2
                continue

            if status == 429:
                raise LLMRateLimitError(
                    f"Rate limited by {self.provider.value}",
                    retry_after=_retry_after(response, backoff),
                    correlation_id=correlation_id,
                    provider=self.provider,
                )

            message = _error_message(response)
            logger.error(
                "LLM provider error",
                extra={"correlation_id": correlation_id, "status_code": status, "error": message},
            )
            raise LLMProviderError(
                f"{self.provider.value} API error {status}: {message}",
                correlation_id=correlation_id,
                provider=self.provider,
            )

        raise LLMProviderError(
            f"{self.provider.value} request failed after {self._max_retries} attempts",
            correlation_id=correlation_id,
            provider=self.provider,
            original_error=last_error,
        )

    def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> Any:
        if self._transport is not None:
            return self._transport.post(
                url, json=payload, headers=headers, timeout=self._timeout_seconds
            )
        with httpx.Client(timeout=self._timeout_seconds) as client:
            return client.post(url, json=payload, headers=headers)


def _retry_after(response: Any, default: float) -> float:
    headers = getattr(response, "headers", None) or {}
    try:
        return float(headers.get("Retry-After", default))
    except (TypeError, ValueError):
        return default


def _error_message(response: Any) -> str:
    try:
        data = response.json()
    except ValueError:
        return str(getattr(response, "text", ""))
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return str(error.get("message", ""))
        if error:
            return str(error)
    return str(getattr(response, "text", ""))
