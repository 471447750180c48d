"""
Call session state machine.

Every rule that moves a call forward lives in ``transition``: it takes the
current ``SessionState`` plus one event and returns the next state, the turns to
append to the logs and the instruction to send back to the carrier. It has no
side effects; ``CallSession.apply`` runs it under the session lock and commits
the result.

    dialing -> connected -> completed | failed | no-answer | busy | canceled

The first terminal decision wins. Once a session is terminal, further events
only refresh ``carrier_status``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from voice_booking.calls.models import (
    AppointmentOutcome,
    SessionStatus,
    SpeakerRole,
    Turn,
)

REPROMPT_TEXT = "I'm sorry, I didn't catch that. Are you able to help me schedule an appointment?"
NO_RESPONSE_TEXT = "I didn't receive a response. I'll have the customer follow up directly. Goodbye."
TECHNICAL_ERROR_TEXT = (
    "I apologize, I encountered a technical issue. "
    "I will have the customer reach out directly. Thank you and goodbye."
)
GENERIC_ERROR_TEXT = "Sorry, an error occurred. Goodbye."

REASON_TECHNICAL_ERROR = "technical error"
REASON_NO_RESPONSE = "no response"

ANSWERED_CARRIER_STATUSES = frozenset({"answered", "in-progress"})

# Carrier lifecycle values that end the call, mapped 1:1 onto session statuses.
TERMINAL_CARRIER_STATUSES: dict[str, SessionStatus] = {
    "failed": SessionStatus.FAILED,
    "busy": SessionStatus.BUSY,
    "no-answer": SessionStatus.NO_ANSWER,
    "canceled": SessionStatus.CANCELED,
}


class InstructionKind(str, Enum):
    """What the carrier should do next."""

    SPEAK_AND_LISTEN = "speak_and_listen"
    SPEAK_AND_HANGUP = "speak_and_hangup"
    HANGUP = "hangup"


@dataclass(frozen=True)
class VoiceInstruction:
    """Carrier-neutral instruction; rendered to TwiML by the telephony layer."""

    kind: InstructionKind
    text: str = ""

    @classmethod
    def listen(cls, text: str) -> VoiceInstruction:
        return cls(InstructionKind.SPEAK_AND_LISTEN, text)

    @classmethod
    def say_goodbye(cls, text: str) -> VoiceInstruction:
        return cls(InstructionKind.SPEAK_AND_HANGUP, text)

    @classmethod
    def hangup(cls) -> VoiceInstruction:
        return cls(InstructionKind.HANGUP)

    @property
    def ends_call(self) -> bool:
        return self.kind is not InstructionKind.SPEAK_AND_LISTEN


# ----------------------------
# Events
# ----------------------------

@dataclass(frozen=True)
class CallAnswered:
    """The carrier fetched the answer webhook: speak the greeting."""

    greeting: str


@dataclass(frozen=True)
class RespondentSpoke:
    text: str


@dataclass(frozen=True)
class DelegateReplied:
    spoken_text: str
    terminal: bool = False
    outcome: AppointmentOutcome | None = None


@dataclass(frozen=True)
class DelegateFailed:
    error: str = ""


@dataclass(frozen=True)
class SpeechTimeout:
    """The listening window closed without any speech."""


@dataclass(frozen=True)
class CarrierStatusReported:
    raw_status: str


SessionEvent = (
    CallAnswered
    | RespondentSpoke
    | DelegateReplied
    | DelegateFailed
    | SpeechTimeout
    | CarrierStatusReported
)


# ----------------------------
# State + transition result
# ----------------------------

@dataclass(frozen=True)
class SessionState:
    status: SessionStatus = SessionStatus.DIALING
    carrier_status: str = "queued"
    outcome: AppointmentOutcome | None = None
    reprompted: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def terminate(self, status: SessionStatus, outcome: AppointmentOutcome) -> SessionState:
        """Enter a terminal status. The outcome is only written if still unset."""
        return replace(self, status=status, outcome=self.outcome or outcome)


@dataclass(frozen=True)
class Transition:
    state: SessionState
    instruction: VoiceInstruction | None = None
    history: tuple[Turn, ...] = field(default_factory=tuple)
    transcript: tuple[Turn, ...] = field(default_factory=tuple)


def transition(state: SessionState, event: SessionEvent) -> Transition:
    """Apply one event to a session state."""
    if isinstance(event, CarrierStatusReported):
        return _on_carrier_status(state, event)

    if state.is_terminal:
        return Transition(state=state, instruction=VoiceInstruction.hangup())

    if isinstance(event, CallAnswered):
        return Transition(
            state=replace(state, status=SessionStatus.CONNECTED),
            instruction=VoiceInstruction.listen(event.greeting),
        )

    if state.status is not SessionStatus.CONNECTED:
        # Conversation events cannot happen before the call is answered.
        return Transition(state=state, instruction=VoiceInstruction.say_goodbye(GENERIC_ERROR_TEXT))

    if isinstance(event, RespondentSpoke):
        turn = Turn(SpeakerRole.RESPONDENT, event.text)
        return Transition(
            state=replace(state, reprompted=False),
            history=(turn,),
            transcript=(turn,),
        )

    if isinstance(event, DelegateReplied):
        return _on_delegate_reply(state, event)

    if isinstance(event, DelegateFailed):
        return Transition(
            state=state.terminate(
                SessionStatus.FAILED,
                AppointmentOutcome.not_booked(REASON_TECHNICAL_ERROR),
            ),
            instruction=VoiceInstruction.say_goodbye(TECHNICAL_ERROR_TEXT),
            transcript=(Turn(SpeakerRole.REQUESTER, TECHNICAL_ERROR_TEXT),),
        )

    if isinstance(event, SpeechTimeout):
        if not state.reprompted:
            return Transition(
                state=replace(state, reprompted=True),
                instruction=VoiceInstruction.listen(REPROMPT_TEXT),
                transcript=(Turn(SpeakerRole.REQUESTER, REPROMPT_TEXT),),
            )
        return Transition(
            state=state.terminate(
                SessionStatus.NO_ANSWER,
                AppointmentOutcome.not_booked(REASON_NO_RESPONSE),
            ),
            instruction=VoiceInstruction.say_goodbye(NO_RESPONSE_TEXT),
            transcript=(Turn(SpeakerRole.REQUESTER, NO_RESPONSE_TEXT),),
        )

    raise TypeError(f"Unsupported session event: {event!r}")


def _on_delegate_reply(state: SessionState, event: DelegateReplied) -> Transition:
    text = event.spoken_text.strip()
    turns = (Turn(SpeakerRole.REQUESTER, text),) if text else ()

    if not event.terminal:
        return Transition(
            state=state,
            instruction=VoiceInstruction.listen(text),
            history=turns,
            transcript=turns,
        )

    outcome = event.outcome or AppointmentOutcome(confirmed=False)
    return Transition(
        state=state.terminate(SessionStatus.COMPLETED, outcome),
        instruction=VoiceInstruction.say_goodbye(text),
        history=turns,
        transcript=turns,
    )


def _on_carrier_status(state: SessionState, event: CarrierStatusReported) -> Transition:
    raw = (event.raw_status or "").strip().lower()
    new_state = replace(state, carrier_status=raw or state.carrier_status)

    if state.is_terminal:
        return Transition(state=new_state)

    if raw in ANSWERED_CARRIER_STATUSES and state.status is SessionStatus.DIALING:
        return Transition(state=replace(new_state, status=SessionStatus.CONNECTED))

    terminal_status = TERMINAL_CARRIER_STATUSES.get(raw)
    if terminal_status is not None:
        return Transition(
            state=new_state.terminate(
                terminal_status,
                AppointmentOutcome.not_booked(f"call {raw}"),
            )
        )

    return Transition(state=new_state)
