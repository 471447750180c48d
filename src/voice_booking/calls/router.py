"""
Call control API: place a call and poll its progress.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from voice_booking.calls.registry import SessionRegistry
from voice_booking.calls.schemas import CallCreatedResponse, CallCreateRequest, CallStatusResponse
from voice_booking.calls.service import CallService
from voice_booking.dependencies import get_registry, get_telephony_config, get_telephony_provider
from voice_booking.telephony.config import TelephonyConfig
from voice_booking.telephony.interface import TelephonyProvider

router = APIRouter(prefix="/api/call", tags=["calls"])


def get_call_service(
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> CallService:
    return CallService(registry=registry, provider=provider, config=config)


@router.post("", response_model=CallCreatedResponse, response_model_by_alias=True)
async def create_call(
    body: CallCreateRequest,
    service: Annotated[CallService, Depends(get_call_service)],
) -> CallCreatedResponse:
    session = await service.place_call(body.to_booking())
    return CallCreatedResponse(call_sid=session.id)


@router.get("/{call_id}", response_model=CallStatusResponse, response_model_by_alias=True)
async def get_call(
    call_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> CallStatusResponse:
    session = registry.get(call_id)
    return CallStatusResponse.from_snapshot(session.snapshot())
