"""
Parser for the outcome marker the delegate appends to its final line.

The delegate ends a call by adding one of::

    APPOINTMENT_CONFIRMED: {"date": "...", "time": "...", "service": "...", "notes": "..."}
    APPOINTMENT_FAILED: {"reason": "..."}

Everything from the marker onwards is removed from the spoken text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

from voice_booking.calls.models import AppointmentOutcome

CONFIRMED_MARKER = "APPOINTMENT_CONFIRMED:"
FAILED_MARKER = "APPOINTMENT_FAILED:"

CONFIRMED_PATTERN = re.compile(re.escape(CONFIRMED_MARKER) + r"\s*")
FAILED_PATTERN = re.compile(re.escape(FAILED_MARKER) + r"\s*")

_OUTCOME_FIELDS = ("date", "time", "service", "notes", "reason")

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class NonTerminal:
    """No marker: the conversation continues."""

    text: str

    terminal = False

    @property
    def outcome(self) -> None:
        return None


@dataclass(frozen=True)
class Confirmed:
    text: str
    data: dict[str, Any]

    terminal = True

    @property
    def outcome(self) -> AppointmentOutcome:
        return AppointmentOutcome(confirmed=True, **_outcome_fields(self.data))


@dataclass(frozen=True)
class Failed:
    text: str
    data: dict[str, Any]

    terminal = True

    @property
    def outcome(self) -> AppointmentOutcome:
        return AppointmentOutcome(confirmed=False, **_outcome_fields(self.data))


@dataclass(frozen=True)
class MalformedTerminal:
    """A marker was present but its payload is not a JSON object."""

    text: str
    raw_payload: str
    confirmed: bool

    terminal = True

    @property
    def outcome(self) -> AppointmentOutcome:
        return AppointmentOutcome(confirmed=self.confirmed, raw=self.raw_payload)


ParsedDelegateOutput = Union[NonTerminal, Confirmed, Failed, MalformedTerminal]


def parse_delegate_output(raw_output: str) -> ParsedDelegateOutput:
    """Split raw delegate output into spoken text and an optional outcome.

    The confirmed marker is looked for first. A payload that does not decode
    to a JSON object keeps the terminal decision and its raw text.
    """
    text = (raw_output or "").strip()
    confirmed_match = CONFIRMED_PATTERN.search(text)
    failed_match = FAILED_PATTERN.search(text)
    if confirmed_match is None and failed_match is None:
        return NonTerminal(text)

    # Nothing from the first marker onwards is ever spoken.
    first = min(m.start() for m in (confirmed_match, failed_match) if m is not None)
    spoken = text[:first].strip()

    match, confirmed = (confirmed_match, True) if confirmed_match else (failed_match, False)
    payload = text[match.end():].strip()
    data = _decode_object(payload)

    if data is None:
        return MalformedTerminal(spoken, _raw_object_text(payload), confirmed)
    if confirmed:
        return Confirmed(spoken, data)
    return Failed(spoken, data)


def _decode_object(payload: str) -> dict[str, Any] | None:
    if not payload.startswith("{"):
        return None
    try:
        value, _ = _decoder.raw_decode(payload)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def _raw_object_text(payload: str) -> str:
    # Keep the brace-delimited part when there is one, else the whole remainder.
    start = payload.find("{")
    end = payload.find("}", start + 1) if start >= 0 else -1
    if start >= 0 and end > start:
        return payload[start: end + 1]
    return payload


def _outcome_fields(data: dict[str, Any]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for key in _OUTCOME_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        fields[key] = value if isinstance(value, str) else json.dumps(value)
    return fields
