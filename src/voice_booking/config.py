"""
Application configuration with environment-driven settings.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "voice-booking-agent"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Response delegate (LLM backend)
    llm_provider: Literal["anthropic", "openai"] = Field(
        default="anthropic",
        description="Backend used to generate the agent's next spoken line.",
    )
    llm_model: str | None = Field(
        default=None,
        description="Model override; provider default when empty.",
    )
    llm_timeout_seconds: float = Field(default=30.0, gt=0, le=120)
    llm_max_retries: int = Field(default=2, ge=1, le=5)
    llm_max_tokens: int = Field(default=400, ge=16, le=4096)
    llm_temperature: float = Field(default=0.4, ge=0.0, le=1.0)

    anthropic_api_key: str = Field(default="")
    openai_api_key: str = Field(default="")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    # Under pytest the environment is monkeypatched per test: never freeze it.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
