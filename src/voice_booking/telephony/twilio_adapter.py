"""
Twilio telephony provider adapter.
"""

from __future__ import annotations

import hashlib
import hmac
from base64 import b64encode
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from voice_booking.shared.exceptions import ConfigurationError
from voice_booking.shared.logging import get_logger
from voice_booking.telephony.config import TelephonyConfig, get_telephony_config
from voice_booking.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    CallInitiationResponse,
    CallStatus,
    TelephonyProvider,
)

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
STATUS_CALLBACK_EVENTS = ("initiated", "ringing", "answered", "completed")


class TwilioAdapter(TelephonyProvider):
    """Twilio REST adapter.

    Uses a lazily created ``httpx.Client``; pass ``http_client`` to inject one.
    """

    def __init__(
        self,
        config: TelephonyConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config or get_telephony_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=httpx.Timeout(self._config.http_timeout_seconds))
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _calls_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self._config.twilio_account_sid}/Calls.json"

    def initiate_call_sync(self, request: CallInitiationRequest) -> CallInitiationResponse:
        if not (self._config.twilio_account_sid and self._config.twilio_auth_token):
            raise ConfigurationError(
                "Twilio credentials are not configured. Set TELEPHONY_TWILIO_ACCOUNT_SID "
                "and TELEPHONY_TWILIO_AUTH_TOKEN."
            )

        payload: dict[str, Any] = {
            "To": request.to,
            "From": request.from_number,
            "Url": request.answer_url,
            "Method": "POST",
            "StatusCallback": request.status_callback_url,
            "StatusCallbackMethod": "POST",
            "StatusCallbackEvent": list(STATUS_CALLBACK_EVENTS),
            "Timeout": self._config.call_timeout_seconds,
        }

        logger.info("Initiating Twilio call", extra={"to": request.to, **request.metadata})

        try:
            response = self._get_client().post(
                self._calls_url(),
                data=payload,
                auth=(self._config.twilio_account_sid, self._config.twilio_auth_token),
            )
        except httpx.HTTPError as e:
            logger.exception("HTTP error during Twilio call initiation", extra={"to": request.to})
            raise CallInitiationError(f"HTTP error: {e!s}", error_code="HTTP_ERROR") from e

        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"message": response.text}
            logger.error(
                "Twilio call initiation failed",
                extra={"status_code": response.status_code, "error": error_data, "to": request.to},
            )
            raise CallInitiationError(
                error_data.get("message") or "Call initiation failed",
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        data = response.json()
        try:
            status = CallStatus(data.get("status", "queued"))
        except ValueError:
            status = CallStatus.QUEUED

        logger.info(
            "Twilio call created",
            extra={"call_sid": data["sid"], "twilio_status": status.value},
        )

        return CallInitiationResponse(
            provider_call_id=data["sid"],
            status=status,
            created_at=_parse_twilio_date(data.get("date_created")),
            raw_response=data,
        )

    def validate_webhook_signature(
        self,
        url: str,
        params: Mapping[str, Any],
        signature: str,
    ) -> bool:
        """Check ``X-Twilio-Signature``: base64 HMAC-SHA1 of url + sorted params."""
        if not self._config.twilio_auth_token:
            logger.warning("No auth token configured, skipping signature validation")
            return True

        data_str = url + "".join(f"{key}{params[key]}" for key in sorted(params))
        computed = hmac.new(
            self._config.twilio_auth_token.encode("utf-8"),
            data_str.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        return hmac.compare_digest(b64encode(computed).decode("utf-8"), signature or "")


def _parse_twilio_date(value: str | None) -> datetime:
    # Twilio uses RFC 2822 dates ("Tue, 31 Aug 2010 20:36:28 +0000").
    if value:
        try:
            return parsedate_to_datetime(value)
        except (TypeError, ValueError):
            pass
    return datetime.now(timezone.utc)
