"""
FastAPI dependencies resolving the per-app singletons kept on ``app.state``.
"""

from fastapi import Request

from voice_booking.calls.registry import SessionRegistry
from voice_booking.telephony.config import TelephonyConfig
from voice_booking.telephony.interface import TelephonyProvider
from voice_booking.telephony.webhooks.handler import CallbackRouter


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_telephony_config(request: Request) -> TelephonyConfig:
    return request.app.state.telephony_config


def get_telephony_provider(request: Request) -> TelephonyProvider:
    return request.app.state.telephony_provider


def get_callback_router(request: Request) -> CallbackRouter:
    return request.app.state.callback_router
