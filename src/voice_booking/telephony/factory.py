"""
Telephony provider factory.
"""

from __future__ import annotations

from voice_booking.shared.logging import get_logger
from voice_booking.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from voice_booking.telephony.interface import TelephonyProvider
from voice_booking.telephony.mock_adapter import MockTelephonyAdapter
from voice_booking.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


def create_telephony_provider(config: TelephonyConfig | None = None) -> TelephonyProvider:
    cfg = config or get_telephony_config()

    logger.info(
        "Telephony config resolved",
        extra={
            "provider_type": cfg.provider_type.value,
            "twilio_account_sid": _mask(cfg.twilio_account_sid),
            "twilio_from_number": cfg.twilio_from_number,
            "webhook_base_url": cfg.webhook_base_url,
            "validate_signatures": cfg.validate_signatures,
        },
    )

    if cfg.provider_type == ProviderType.TWILIO:
        return TwilioAdapter(cfg)
    if cfg.provider_type == ProviderType.MOCK:
        return MockTelephonyAdapter()

    raise ValueError(f"Unsupported telephony provider_type: {cfg.provider_type}")
