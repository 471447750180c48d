"""
TwiML rendering for carrier-neutral voice instructions.
"""

from __future__ import annotations

from voice_booking.calls.state_machine import InstructionKind, VoiceInstruction
from voice_booking.telephony.config import GATHER_PATH, NO_INPUT_PATH, TelephonyConfig


def _twiml(body: str) -> str:
    return '<?xml version="1.0" encoding="UTF-8"?>\n<Response>\n' + body + "\n</Response>"


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _say(text: str, voice: str, indent: str = "  ") -> str:
    return f'{indent}<Say voice="{_xml_escape(voice)}">{_xml_escape(text)}</Say>'


def render_instruction(instruction: VoiceInstruction, config: TelephonyConfig) -> str:
    """Render an instruction as a TwiML document.

    SPEAK_AND_LISTEN speaks inside a speech ``<Gather>`` posting to the gather
    webhook and falls through to a redirect to the no-input webhook when the
    listening window closes silently. SPEAK_AND_HANGUP speaks, pauses one
    second and hangs up. HANGUP just hangs up.
    """
    if instruction.kind is InstructionKind.SPEAK_AND_LISTEN:
        action = _xml_escape(config.get_webhook_url(GATHER_PATH))
        no_input = _xml_escape(config.get_webhook_url(NO_INPUT_PATH))
        lines = [
            f'  <Gather input="speech" action="{action}" method="POST" '
            f'timeout="{config.gather_timeout_seconds}" speechTimeout="auto" '
            f'language="{_xml_escape(config.speech_language)}">',
        ]
        if instruction.text:
            lines.append(_say(instruction.text, config.voice, indent="    "))
        lines.append("  </Gather>")
        lines.append(f'  <Redirect method="POST">{no_input}</Redirect>')
        return _twiml("\n".join(lines))

    lines = []
    if instruction.kind is InstructionKind.SPEAK_AND_HANGUP and instruction.text:
        lines.append(_say(instruction.text, config.voice))
        lines.append('  <Pause length="1" />')
    lines.append("  <Hangup />")
    return _twiml("\n".join(lines))
