"""
FastAPI router for telephony webhook endpoints.

The carrier posts form data to these endpoints and expects TwiML back. Every
endpoint answers with a valid document, even for calls it does not know.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from voice_booking.calls.state_machine import VoiceInstruction
from voice_booking.dependencies import (
    get_callback_router,
    get_telephony_config,
    get_telephony_provider,
)
from voice_booking.shared.logging import correlation_id_var, get_logger
from voice_booking.telephony.config import WEBHOOK_PREFIX, TelephonyConfig
from voice_booking.telephony.interface import TelephonyProvider, WebhookParseError
from voice_booking.telephony.twiml import render_instruction
from voice_booking.telephony.webhooks.handler import CallbackRouter

logger = get_logger(__name__)

router = APIRouter(prefix=WEBHOOK_PREFIX, tags=["webhooks"])

SIGNATURE_HEADER = "X-Twilio-Signature"


async def read_verified_form(
    request: Request,
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
) -> dict[str, str]:
    """Parse the carrier's form post and, when enabled, check its signature.

    Also tags the request's log lines with the call SID.
    """
    form = {key: str(value) for key, value in (await request.form()).items()}
    correlation_id_var.set(form.get("CallSid") or None)

    if config.validate_signatures:
        signed_url = config.get_webhook_url(request.url.path)
        if request.url.query:
            signed_url = f"{signed_url}?{request.url.query}"
        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not provider.validate_webhook_signature(signed_url, form, signature):
            logger.warning(
                "Rejected webhook with invalid signature",
                extra={"path": request.url.path},
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    return form


def _twiml_response(instruction: VoiceInstruction, config: TelephonyConfig) -> Response:
    return Response(content=render_instruction(instruction, config), media_type="application/xml")


@router.post("/answer")
async def answer(
    form: Annotated[dict[str, str], Depends(read_verified_form)],
    callbacks: Annotated[CallbackRouter, Depends(get_callback_router)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    instruction = callbacks.on_call_answered(form.get("CallSid"))
    return _twiml_response(instruction, config)


@router.post("/gather")
async def gather(
    form: Annotated[dict[str, str], Depends(read_verified_form)],
    callbacks: Annotated[CallbackRouter, Depends(get_callback_router)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    instruction = await callbacks.on_speech(form.get("CallSid"), form.get("SpeechResult"))
    return _twiml_response(instruction, config)


@router.post("/no-input")
async def no_input(
    form: Annotated[dict[str, str], Depends(read_verified_form)],
    callbacks: Annotated[CallbackRouter, Depends(get_callback_router)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    instruction = callbacks.on_speech_timeout(form.get("CallSid"))
    return _twiml_response(instruction, config)


@router.post("/status", status_code=status.HTTP_200_OK)
async def call_status(
    form: Annotated[dict[str, str], Depends(read_verified_form)],
    callbacks: Annotated[CallbackRouter, Depends(get_callback_router)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
) -> Any:
    # Status callbacks are always acknowledged so the carrier does not retry.
    try:
        event = provider.parse_status_callback(form)
    except WebhookParseError as e:
        logger.warning(
            "Ignoring malformed status callback",
            extra={"error_code": e.error_code, "payload_keys": sorted(form)},
        )
        return {"ok": True}

    callbacks.on_carrier_status(event.provider_call_id, event.raw_status)
    return {"ok": True}
