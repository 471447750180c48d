"""
Callback router: maps carrier webhooks onto call session events.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

from voice_booking.calls.models import SessionStatus, Turn
from voice_booking.calls.registry import SessionRegistry
from voice_booking.calls.session import CallSession
from voice_booking.calls.state_machine import (
    GENERIC_ERROR_TEXT,
    CallAnswered,
    CarrierStatusReported,
    DelegateFailed,
    DelegateReplied,
    RespondentSpoke,
    SpeechTimeout,
    VoiceInstruction,
)
from voice_booking.dialogue.delegate import DelegateTurn
from voice_booking.shared.logging import get_logger

logger = get_logger(__name__)


class ResponseDelegateProtocol(Protocol):
    async def generate_next_turn(
        self,
        instructions: str,
        history: Sequence[Turn],
    ) -> DelegateTurn: ...


class CallbackRouter:
    """Handles answer, speech, no-input and status callbacks for live calls.

    Every callback resolves the session by carrier call id and applies one or
    more events to it. Replies are carrier-neutral ``VoiceInstruction`` values.
    Speech turns for one call are handled one at a time.
    """

    def __init__(self, registry: SessionRegistry, delegate: ResponseDelegateProtocol) -> None:
        self._registry = registry
        self._delegate = delegate
        self._turn_locks: dict[str, asyncio.Lock] = {}

    def _get_turn_lock(self, call_id: str) -> asyncio.Lock:
        lock = self._turn_locks.get(call_id)
        if lock is None:
            lock = asyncio.Lock()
            self._turn_locks[call_id] = lock
        return lock

    def _resolve(self, call_id: str | None, callback: str) -> CallSession | None:
        session = self._registry.find(call_id)
        if session is None:
            logger.warning(
                "Callback for unknown call session",
                extra={"call_id": call_id, "callback": callback},
            )
        return session

    def on_call_answered(self, call_id: str | None) -> VoiceInstruction:
        session = self._resolve(call_id, "answer")
        if session is None:
            return VoiceInstruction.say_goodbye(GENERIC_ERROR_TEXT)

        logger.info("Call answered", extra={"call_id": session.id})
        result = session.apply(CallAnswered(session.greeting))
        return result.instruction or VoiceInstruction.hangup()

    async def on_speech(self, call_id: str | None, speech: str | None) -> VoiceInstruction:
        text = (speech or "").strip()
        if not text:
            return self.on_speech_timeout(call_id)

        session = self._resolve(call_id, "gather")
        if session is None:
            return VoiceInstruction.say_goodbye(GENERIC_ERROR_TEXT)

        async with self._get_turn_lock(session.id):
            logger.info("Respondent spoke", extra={"call_id": session.id, "speech": text[:200]})

            spoke = session.apply(RespondentSpoke(text))
            if spoke.instruction is not None:
                return spoke.instruction

            try:
                turn = await self._delegate.generate_next_turn(
                    session.instructions,
                    session.history.read(),
                )
            except Exception as exc:
                logger.exception(
                    "Response delegate failed",
                    extra={"call_id": session.id, "error_type": type(exc).__name__},
                )
                failed = session.apply(DelegateFailed(str(exc)))
                return failed.instruction or VoiceInstruction.hangup()

            replied = session.apply(
                DelegateReplied(
                    spoken_text=turn.spoken_text,
                    terminal=turn.terminal,
                    outcome=turn.outcome,
                )
            )
            return replied.instruction or VoiceInstruction.hangup()

    def on_speech_timeout(self, call_id: str | None) -> VoiceInstruction:
        session = self._resolve(call_id, "no-input")
        if session is None:
            return VoiceInstruction.say_goodbye(GENERIC_ERROR_TEXT)

        logger.info("No speech before timeout", extra={"call_id": session.id})
        result = session.apply(SpeechTimeout())
        return result.instruction or VoiceInstruction.hangup()

    def on_carrier_status(self, call_id: str | None, raw_status: str) -> SessionStatus | None:
        """Record a lifecycle status. Returns the session status, None if unknown."""
        session = self._resolve(call_id, "status")
        if session is None:
            return None

        logger.info(
            "Carrier status callback",
            extra={"call_id": session.id, "carrier_status": raw_status},
        )
        result = session.apply(CarrierStatusReported(raw_status))
        return result.state.status
