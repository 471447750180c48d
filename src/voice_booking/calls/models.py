"""
Domain models for outbound booking calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_SALON_NAME = "the salon"


class SessionStatus(str, Enum):
    """Lifecycle status of a call session."""

    DIALING = "dialing"
    CONNECTED = "connected"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    BUSY = "busy"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[SessionStatus] = frozenset(
    {
        SessionStatus.COMPLETED,
        SessionStatus.FAILED,
        SessionStatus.NO_ANSWER,
        SessionStatus.BUSY,
        SessionStatus.CANCELED,
    }
)


class SpeakerRole(str, Enum):
    """Who said a line on the call."""

    REQUESTER = "requester"  # our agent, calling for the customer
    RESPONDENT = "respondent"  # the person who picked up at the salon


@dataclass(frozen=True)
class Turn:
    """A single spoken line."""

    role: SpeakerRole
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.text}


@dataclass(frozen=True)
class BookingRequest:
    """What the customer wants booked. Immutable for the life of a call."""

    customer_name: str
    service: str
    salon_phone: str
    salon_name: str = DEFAULT_SALON_NAME
    preferred_date: str = ""
    preferred_time: str = ""


class AppointmentOutcome(BaseModel):
    """Terminal booking determination for a call."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    confirmed: bool
    date: str | None = None
    time: str | None = None
    service: str | None = None
    notes: str | None = None
    reason: str | None = None
    # Unparsed marker payload, kept when the delegate emitted broken JSON.
    raw: str | None = None

    @classmethod
    def not_booked(cls, reason: str) -> AppointmentOutcome:
        return cls(confirmed=False, reason=reason)

    def to_public_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
