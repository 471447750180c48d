"""
Response delegate: produces the agent's next spoken line.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

from voice_booking.calls.models import AppointmentOutcome, SpeakerRole, Turn
from voice_booking.config import Settings, get_settings
from voice_booking.dialogue.llm.factory import create_llm_gateway
from voice_booking.dialogue.llm.gateway import LLMGateway
from voice_booking.dialogue.llm.models import ChatMessage, ChatRequest, MessageRole
from voice_booking.dialogue.llm.response_parser import parse_delegate_output
from voice_booking.shared.logging import correlation_id_var, get_logger

logger = get_logger(__name__)

_ROLE_MAP = {
    SpeakerRole.RESPONDENT: MessageRole.USER,
    SpeakerRole.REQUESTER: MessageRole.ASSISTANT,
}


@dataclass(frozen=True)
class DelegateTurn:
    spoken_text: str
    terminal: bool = False
    outcome: AppointmentOutcome | None = None


class ResponseDelegate:
    """Stateless wrapper around the language backend.

    Every call gets the full instructions and conversation history. Backend
    errors (``LLMError`` and friends) are not handled here.
    """

    def __init__(
        self,
        gateway: LLMGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings

    @property
    def gateway(self) -> LLMGateway:
        # Built on first use so a missing API key fails a call, not app startup.
        if self._gateway is None:
            settings = self._settings or get_settings()
            api_key = (
                settings.anthropic_api_key
                if settings.llm_provider == "anthropic"
                else settings.openai_api_key
            )
            self._gateway = create_llm_gateway(
                provider=settings.llm_provider,
                api_key=api_key or None,
                model=settings.llm_model,
                timeout_seconds=settings.llm_timeout_seconds,
                max_retries=settings.llm_max_retries,
            )
        return self._gateway

    async def generate_next_turn(
        self,
        instructions: str,
        history: Sequence[Turn],
    ) -> DelegateTurn:
        settings = self._settings or get_settings()
        request = ChatRequest(
            messages=[ChatMessage(role=MessageRole.SYSTEM, content=instructions)]
            + _to_chat_messages(history),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            correlation_id=correlation_id_var.get() or str(uuid4()),
        )

        response = await self.gateway.chat_completion(request)
        parsed = parse_delegate_output(response.content)

        if parsed.terminal:
            logger.info(
                "Delegate ended the conversation",
                extra={
                    "result": type(parsed).__name__,
                    "latency_ms": round(response.latency_ms, 1),
                },
            )

        return DelegateTurn(
            spoken_text=parsed.text,
            terminal=parsed.terminal,
            outcome=parsed.outcome,
        )


def _to_chat_messages(history: Sequence[Turn]) -> list[ChatMessage]:
    """Map turns onto chat roles, merging consecutive lines from one speaker."""
    merged: list[tuple[MessageRole, str]] = []
    for turn in history:
        role = _ROLE_MAP[turn.role]
        if merged and merged[-1][0] is role:
            merged[-1] = (role, f"{merged[-1][1]} {turn.text}")
        else:
            merged.append((role, turn.text))
    return [ChatMessage(role=role, content=content) for role, content in merged]
