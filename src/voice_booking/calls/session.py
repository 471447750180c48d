"""
Call session aggregate: one per outbound call.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

from voice_booking.calls.models import (
    AppointmentOutcome,
    BookingRequest,
    SessionStatus,
    SpeakerRole,
    Turn,
)
from voice_booking.calls.state_machine import (
    SessionEvent,
    SessionState,
    Transition,
    transition,
)
from voice_booking.calls.transcript import TranscriptLog
from voice_booking.shared.logging import get_logger

logger = get_logger(__name__)


class CallSession:
    """Tracks one phone call from dial-out until it terminates.

    Identity, booking request, greeting and delegate instructions are fixed at
    creation. Status, carrier status and outcome change only through
    ``apply``, which serializes transitions for this session.
    """

    def __init__(
        self,
        call_id: str,
        booking: BookingRequest,
        greeting: str,
        instructions: str,
        created_at: datetime | None = None,
    ) -> None:
        self._id = call_id
        self._booking = booking
        self._greeting = greeting
        self._instructions = instructions
        self._created_at = created_at or datetime.now(timezone.utc)

        self._state = SessionState()
        self._lock = threading.Lock()

        # History excludes the greeting: the delegate gets it via its instructions.
        self.history = TranscriptLog()
        self.transcript = TranscriptLog([Turn(SpeakerRole.REQUESTER, greeting)])

    @property
    def id(self) -> str:
        return self._id

    @property
    def booking(self) -> BookingRequest:
        return self._booking

    @property
    def greeting(self) -> str:
        return self._greeting

    @property
    def instructions(self) -> str:
        return self._instructions

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def carrier_status(self) -> str:
        return self._state.carrier_status

    @property
    def outcome(self) -> AppointmentOutcome | None:
        return self._state.outcome

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def apply(self, event: SessionEvent) -> Transition:
        """Run one state-machine transition atomically and commit it."""
        with self._lock:
            previous = self._state
            result = transition(previous, event)

            self.history.extend(result.history)
            self.transcript.extend(result.transcript)
            self._state = result.state

        if result.state.status is not previous.status:
            logger.info(
                "Call session status changed",
                extra={
                    "call_id": self._id,
                    "event": type(event).__name__,
                    "from_status": previous.status.value,
                    "to_status": result.state.status.value,
                    "outcome": result.state.outcome.to_public_dict() if result.state.outcome else None,
                },
            )
        return result

    def snapshot(self) -> dict[str, Any]:
        """Consistent view of the session for polling clients."""
        with self._lock:
            state = self._state
            transcript = self.transcript.to_list()

        return {
            "call_id": self._id,
            "status": state.status.value,
            "carrier_status": state.carrier_status,
            "transcript": transcript,
            "outcome": state.outcome.to_public_dict() if state.outcome else None,
            "created_at": self._created_at,
        }

    def __repr__(self) -> str:
        return f"CallSession(id={self._id!r}, status={self.status.value!r})"
