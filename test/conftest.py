"""
Shared fixtures for the voice booking tests.
"""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from voice_booking.calls.models import BookingRequest, Turn
from voice_booking.calls.registry import SessionRegistry
from voice_booking.calls.session import CallSession
from voice_booking.dialogue.delegate import DelegateTurn
from voice_booking.dialogue.greeting import build_greeting
from voice_booking.telephony.config import ProviderType, TelephonyConfig
from voice_booking.telephony.mock_adapter import MockTelephonyAdapter


class FakeDelegate:
    """Scripted response delegate: returns queued turns or raises."""

    def __init__(
        self,
        turns: Sequence[DelegateTurn] = (),
        error: Exception | None = None,
    ) -> None:
        self.turns = list(turns)
        self.error = error
        self.calls: list[tuple[str, tuple[Turn, ...]]] = []

    async def generate_next_turn(self, instructions: str, history: Sequence[Turn]) -> DelegateTurn:
        self.calls.append((instructions, tuple(history)))
        if self.error is not None:
            raise self.error
        return self.turns.pop(0)


@pytest.fixture
def booking() -> BookingRequest:
    return BookingRequest(
        customer_name="Alex",
        service="haircut",
        salon_phone="+15551234567",
        salon_name="Shear Joy",
        preferred_date="Friday",
        preferred_time="3pm",
    )


@pytest.fixture
def make_session(booking: BookingRequest):
    def _make(call_id: str = "CA_TEST_0001") -> CallSession:
        return CallSession(
            call_id=call_id,
            booking=booking,
            greeting=build_greeting(booking),
            instructions="You are calling a salon.",
        )

    return _make


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.MOCK,
        twilio_account_sid="",
        twilio_auth_token="",
        twilio_from_number="+15550000000",
        webhook_base_url="https://agent.example.com",
        validate_signatures=False,
    )


@pytest.fixture
def mock_provider() -> MockTelephonyAdapter:
    return MockTelephonyAdapter()
