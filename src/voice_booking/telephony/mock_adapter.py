"""
Mock telephony provider for local runs and tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from voice_booking.shared.logging import get_logger
from voice_booking.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    CallInitiationResponse,
    CallStatus,
    StatusCallbackEvent,
    TelephonyProvider,
)

logger = get_logger(__name__)


class MockTelephonyAdapter(TelephonyProvider):
    """Records requests instead of dialing. Failure can be switched on."""

    def __init__(self) -> None:
        self._calls: list[CallInitiationRequest] = []
        self._webhooks: list[dict[str, Any]] = []
        self._next_call_id = 1
        self._should_fail = False
        self._fail_error = "Mock failure"
        self._fail_code = "MOCK_ERROR"
        self._signature_valid = True

    def reset(self) -> None:
        self._calls.clear()
        self._webhooks.clear()
        self._next_call_id = 1
        self._should_fail = False
        self._signature_valid = True

    def configure_failure(
        self,
        should_fail: bool = True,
        error_message: str = "Mock failure",
        error_code: str = "MOCK_ERROR",
    ) -> None:
        self._should_fail = should_fail
        self._fail_error = error_message
        self._fail_code = error_code

    def configure_signature_result(self, valid: bool) -> None:
        self._signature_valid = valid

    @property
    def calls(self) -> list[CallInitiationRequest]:
        return self._calls.copy()

    @property
    def webhooks(self) -> list[dict[str, Any]]:
        return self._webhooks.copy()

    def get_last_call(self) -> CallInitiationRequest | None:
        return self._calls[-1] if self._calls else None

    def initiate_call_sync(self, request: CallInitiationRequest) -> CallInitiationResponse:
        logger.info("Mock: Initiating call", extra={"to": request.to})

        if self._should_fail:
            raise CallInitiationError(self._fail_error, error_code=self._fail_code)

        self._calls.append(request)
        provider_call_id = f"MOCK_CALL_{self._next_call_id:06d}"
        self._next_call_id += 1

        return CallInitiationResponse(
            provider_call_id=provider_call_id,
            status=CallStatus.QUEUED,
            created_at=datetime.now(timezone.utc),
            raw_response={"mock": True, "sid": provider_call_id},
        )

    def parse_status_callback(self, payload: Mapping[str, Any]) -> StatusCallbackEvent:
        self._webhooks.append(dict(payload))
        return super().parse_status_callback(payload)

    def validate_webhook_signature(
        self,
        url: str,
        params: Mapping[str, Any],
        signature: str,
    ) -> bool:
        return self._signature_valid
