"""
Factory for creating LLM gateway instances.
"""

import os
from typing import Any

from voice_booking.dialogue.llm.anthropic_adapter import DEFAULT_ANTHROPIC_MODEL, AnthropicAdapter
from voice_booking.dialogue.llm.gateway import LLMGateway
from voice_booking.dialogue.llm.models import LLMProvider, LLMProviderError
from voice_booking.dialogue.llm.openai_adapter import DEFAULT_OPENAI_MODEL, OpenAIAdapter
from voice_booking.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODELS = {
    LLMProvider.OPENAI: DEFAULT_OPENAI_MODEL,
    LLMProvider.ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
}

API_KEY_ENV_VARS = {
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
}

_ADAPTERS = {
    LLMProvider.OPENAI: OpenAIAdapter,
    LLMProvider.ANTHROPIC: AnthropicAdapter,
}


def create_llm_gateway(
    provider: LLMProvider | str,
    api_key: str | None = None,
    model: str | None = None,
    timeout_seconds: float = 30.0,
    max_retries: int = 3,
    **kwargs: Any,
) -> LLMGateway:
    """Create an LLM gateway instance for the specified provider.

    Args:
        provider: LLM provider (openai, anthropic) or LLMProvider enum.
        api_key: API key for the provider. If not provided, reads from environment.
        model: Model to use. If not provided, uses provider default.
        timeout_seconds: Request timeout in seconds.
        max_retries: Maximum number of attempts for retryable failures.
        **kwargs: Passed to the adapter (base_url, transport, sleep_func).

    Returns:
        LLMGateway instance.

    Raises:
        LLMProviderError: If provider is not supported or API key is missing.
    """
    if isinstance(provider, str):
        try:
            provider = LLMProvider(provider.lower())
        except ValueError:
            raise LLMProviderError(
                f"Unsupported LLM provider: {provider}. "
                f"Supported providers: {[p.value for p in LLMProvider]}"
            ) from None

    if not api_key:
        api_key = os.environ.get(API_KEY_ENV_VARS[provider], "")

    if not api_key:
        raise LLMProviderError(
            f"API key required for {provider.value}. "
            f"Set {API_KEY_ENV_VARS[provider]} or pass api_key.",
            provider=provider,
        )

    model = model or DEFAULT_MODELS[provider]

    logger.info(
        "Creating LLM gateway",
        extra={
            "provider": provider.value,
            "model": model,
            "timeout_seconds": timeout_seconds,
        },
    )

    adapter_cls = _ADAPTERS[provider]
    return adapter_cls(
        api_key=api_key,
        default_model=model,
        timeout_seconds=timeout_seconds,
        max_retries=max_retries,
        **kwargs,
    )
