"""
Telephony provider interface definition.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import anyio


class CallStatus(str, Enum):
    """Carrier call lifecycle values (Twilio spelling)."""

    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    ANSWERED = "answered"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class CallInitiationRequest:
    """Request to place an outbound call."""

    to: str
    from_number: str
    answer_url: str
    status_callback_url: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CallInitiationResponse:
    """Response from call initiation."""

    provider_call_id: str
    status: CallStatus
    created_at: datetime
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StatusCallbackEvent:
    """Parsed lifecycle status callback."""

    provider_call_id: str
    raw_status: str
    status: CallStatus | None
    duration_seconds: int | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict)


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider_response = provider_response or {}


class CallInitiationError(TelephonyProviderError):
    """Error during call initiation."""


class WebhookParseError(TelephonyProviderError):
    """Error parsing webhook event."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers.

    ``initiate_call_sync`` does the blocking work; ``initiate_call`` runs it in
    a worker thread.
    """

    async def initiate_call(self, request: CallInitiationRequest) -> CallInitiationResponse:
        return await anyio.to_thread.run_sync(self.initiate_call_sync, request)

    @abstractmethod
    def initiate_call_sync(self, request: CallInitiationRequest) -> CallInitiationResponse:
        """Place an outbound call."""
        ...

    def parse_status_callback(self, payload: Mapping[str, Any]) -> StatusCallbackEvent:
        """Parse a status callback form (``CallSid``, ``CallStatus``, ...).

        Raises:
            WebhookParseError: If ``CallSid`` or ``CallStatus`` is missing.
        """
        data = {k: str(v) for k, v in payload.items()}
        call_sid = data.get("CallSid", "").strip()
        raw_status = data.get("CallStatus", "").strip().lower()

        if not call_sid:
            raise WebhookParseError(
                "Missing CallSid in webhook payload",
                error_code="MISSING_CALL_SID",
                provider_response=data,
            )
        if not raw_status:
            raise WebhookParseError(
                "Missing CallStatus in webhook payload",
                error_code="MISSING_CALL_STATUS",
                provider_response=data,
            )

        try:
            status: CallStatus | None = CallStatus(raw_status)
        except ValueError:
            status = None

        duration = data.get("CallDuration")
        return StatusCallbackEvent(
            provider_call_id=call_sid,
            raw_status=raw_status,
            status=status,
            duration_seconds=int(duration) if duration and duration.isdigit() else None,
            error_code=data.get("ErrorCode") or None,
            error_message=data.get("ErrorMessage") or None,
            raw_payload=data,
        )

    @abstractmethod
    def validate_webhook_signature(
        self,
        url: str,
        params: Mapping[str, Any],
        signature: str,
    ) -> bool:
        """Validate webhook signature for authenticity."""
        ...

    def close(self) -> None:
        """Release provider resources."""
