"""
Call placement service.
"""

from __future__ import annotations

from voice_booking.calls.models import BookingRequest
from voice_booking.calls.registry import SessionRegistry
from voice_booking.calls.session import CallSession
from voice_booking.dialogue.greeting import build_greeting
from voice_booking.dialogue.llm.prompts import build_delegate_instructions
from voice_booking.shared.exceptions import ConfigurationError
from voice_booking.shared.logging import get_logger
from voice_booking.telephony.config import ANSWER_PATH, STATUS_PATH, TelephonyConfig
from voice_booking.telephony.interface import CallInitiationRequest, TelephonyProvider

logger = get_logger(__name__)


class CallService:
    """Places outbound calls and registers their sessions."""

    def __init__(
        self,
        registry: SessionRegistry,
        provider: TelephonyProvider,
        config: TelephonyConfig,
    ) -> None:
        self._registry = registry
        self._provider = provider
        self._config = config

    async def place_call(self, booking: BookingRequest) -> CallSession:
        """Dial the salon and register a session under the carrier call id.

        Raises:
            ConfigurationError: If no public webhook base URL is configured.
            CallInitiationError: If the carrier refuses the call. No session
                is created in that case.
        """
        if not self._config.is_configured:
            raise ConfigurationError(
                "BASE_URL is not configured. Set it to your public server URL "
                "(e.g. from ngrok)."
            )

        greeting = build_greeting(booking)
        instructions = build_delegate_instructions(booking, greeting)

        response = await self._provider.initiate_call(
            CallInitiationRequest(
                to=booking.salon_phone,
                from_number=self._config.twilio_from_number,
                answer_url=self._config.get_webhook_url(ANSWER_PATH),
                status_callback_url=self._config.get_webhook_url(STATUS_PATH),
                metadata={"customer_name": booking.customer_name, "service": booking.service},
            )
        )

        session = CallSession(
            call_id=response.provider_call_id,
            booking=booking,
            greeting=greeting,
            instructions=instructions,
        )
        self._registry.create(session.id, session)

        logger.info(
            "Call placed",
            extra={
                "call_id": session.id,
                "to": booking.salon_phone,
                "carrier_status": response.status.value,
            },
        )
        return session
