"""
Tests for the callback router (webhook events -> session transitions).
"""

from __future__ import annotations

import pytest

from conftest import FakeDelegate
from voice_booking.calls.models import AppointmentOutcome, SessionStatus
from voice_booking.calls.state_machine import (
    GENERIC_ERROR_TEXT,
    NO_RESPONSE_TEXT,
    REPROMPT_TEXT,
    TECHNICAL_ERROR_TEXT,
    InstructionKind,
)
from voice_booking.dialogue.delegate import DelegateTurn
from voice_booking.dialogue.llm.models import LLMProviderError
from voice_booking.telephony.webhooks.handler import CallbackRouter

CONFIRMED = AppointmentOutcome(confirmed=True, date="Friday", time="3pm", service="haircut", notes="")


@pytest.fixture
def answered_session(registry, make_session):
    session = make_session("CA1")
    registry.create("CA1", session)
    return session


def _router(registry, delegate: FakeDelegate) -> CallbackRouter:
    return CallbackRouter(registry, delegate)


class TestCallbackRouter:
    def test_answer_speaks_greeting(self, registry, answered_session) -> None:
        router = _router(registry, FakeDelegate())

        instruction = router.on_call_answered("CA1")

        assert instruction.kind is InstructionKind.SPEAK_AND_LISTEN
        assert instruction.text == answered_session.greeting
        assert answered_session.status is SessionStatus.CONNECTED

    def test_unknown_session_gets_generic_goodbye(self, registry) -> None:
        router = _router(registry, FakeDelegate())

        instruction = router.on_call_answered("CA_UNKNOWN")

        assert instruction.kind is InstructionKind.SPEAK_AND_HANGUP
        assert instruction.text == GENERIC_ERROR_TEXT
        assert router.on_carrier_status("CA_UNKNOWN", "completed") is None

    @pytest.mark.asyncio
    async def test_full_booking_conversation(self, registry, answered_session) -> None:
        delegate = FakeDelegate(
            turns=[
                DelegateTurn("Is Friday at 3pm available?"),
                DelegateTurn("All set, goodbye!", terminal=True, outcome=CONFIRMED),
            ]
        )
        router = _router(registry, delegate)
        router.on_call_answered("CA1")

        first = await router.on_speech("CA1", "Hi, sure, when would they like to come?")
        assert first.kind is InstructionKind.SPEAK_AND_LISTEN
        assert first.text == "Is Friday at 3pm available?"

        second = await router.on_speech("CA1", "Yes, 3pm Friday is free.")
        assert second.kind is InstructionKind.SPEAK_AND_HANGUP
        assert second.text == "All set, goodbye!"

        assert answered_session.status is SessionStatus.COMPLETED
        assert answered_session.outcome == CONFIRMED

        # The delegate got the instructions and the growing history.
        instructions, history = delegate.calls[1]
        assert instructions == answered_session.instructions
        assert [t.text for t in history] == [
            "Hi, sure, when would they like to come?",
            "Is Friday at 3pm available?",
            "Yes, 3pm Friday is free.",
        ]

        # Transcript: greeting + 4 turns.
        assert len(answered_session.transcript) == 5

    @pytest.mark.asyncio
    async def test_delegate_failure_ends_call_with_apology(self, registry, answered_session) -> None:
        router = _router(registry, FakeDelegate(error=LLMProviderError("backend down")))
        router.on_call_answered("CA1")

        instruction = await router.on_speech("CA1", "Hello?")

        assert instruction.kind is InstructionKind.SPEAK_AND_HANGUP
        assert instruction.text == TECHNICAL_ERROR_TEXT
        assert answered_session.status is SessionStatus.FAILED
        assert answered_session.outcome.reason == "technical error"

    @pytest.mark.asyncio
    async def test_empty_speech_is_treated_as_timeout(self, registry, answered_session) -> None:
        delegate = FakeDelegate()
        router = _router(registry, delegate)
        router.on_call_answered("CA1")

        instruction = await router.on_speech("CA1", "   ")

        assert instruction.text == REPROMPT_TEXT
        assert delegate.calls == []

    def test_two_timeouts_end_as_no_answer(self, registry, answered_session) -> None:
        router = _router(registry, FakeDelegate())
        router.on_call_answered("CA1")

        assert router.on_speech_timeout("CA1").text == REPROMPT_TEXT
        final = router.on_speech_timeout("CA1")

        assert final.kind is InstructionKind.SPEAK_AND_HANGUP
        assert final.text == NO_RESPONSE_TEXT
        assert answered_session.status is SessionStatus.NO_ANSWER

    @pytest.mark.asyncio
    async def test_status_after_confirmation_keeps_outcome(self, registry, answered_session) -> None:
        router = _router(
            registry,
            FakeDelegate(turns=[DelegateTurn("All set!", terminal=True, outcome=CONFIRMED)]),
        )
        router.on_call_answered("CA1")
        await router.on_speech("CA1", "Friday 3pm is booked.")

        status = router.on_carrier_status("CA1", "failed")

        assert status is SessionStatus.COMPLETED
        assert answered_session.outcome == CONFIRMED
        assert answered_session.carrier_status == "failed"

    @pytest.mark.asyncio
    async def test_speech_after_cancel_hangs_up_without_delegate(self, registry, answered_session) -> None:
        delegate = FakeDelegate()
        router = _router(registry, delegate)
        router.on_call_answered("CA1")
        router.on_carrier_status("CA1", "canceled")

        instruction = await router.on_speech("CA1", "Hello?")

        assert instruction.kind is InstructionKind.HANGUP
        assert delegate.calls == []
