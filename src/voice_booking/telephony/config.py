"""
Telephony provider configuration.
"""

from enum import Enum

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

WEBHOOK_PREFIX = "/webhooks/telephony"
ANSWER_PATH = f"{WEBHOOK_PREFIX}/answer"
GATHER_PATH = f"{WEBHOOK_PREFIX}/gather"
NO_INPUT_PATH = f"{WEBHOOK_PREFIX}/no-input"
STATUS_PATH = f"{WEBHOOK_PREFIX}/status"


class ProviderType(str, Enum):
    """Supported telephony provider types."""

    TWILIO = "twilio"
    MOCK = "mock"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    provider_type: ProviderType = Field(default=ProviderType.TWILIO)

    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")
    twilio_from_number: str = Field(default="")

    # Public base URL the carrier uses for webhooks. Empty means not configured.
    webhook_base_url: str = Field(
        default="",
        validation_alias=AliasChoices("TELEPHONY_WEBHOOK_BASE_URL", "BASE_URL"),
    )

    voice: str = Field(default="alice")
    speech_language: str = Field(default="en-US")
    gather_timeout_seconds: int = Field(default=10, ge=1, le=60)
    call_timeout_seconds: int = Field(default=60, ge=10, le=600)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    validate_signatures: bool = Field(default=False)

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_base_url.strip())

    def get_webhook_url(self, path: str) -> str:
        base = self.webhook_base_url.strip().rstrip("/")
        return f"{base}{path}"


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
