"""
Telephony provider configuration.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Routes the provider calls back on
STATUS_CALLBACK_PATH = "/call-status"
RECORDING_CALLBACK_PATH = "/record-complete"
TWIML_PATH = "/twiml"


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
    )

    # Provider selection
    provider_type: ProviderType = Field(default=ProviderType.TWILIO)

    # Provider credentials
    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")
    twilio_from_number: str = Field(
        default="",
        description="Caller ID presented on outbound calls",
    )
    twilio_api_base_url: str = Field(default="https://api.twilio.com")

    # Public base URL the provider uses to reach our TwiML and webhook routes
    webhook_base_url: str = Field(default="")

    http_timeout_seconds: float = Field(default=30.0, gt=0, le=120)

    def get_webhook_url(self, path: str) -> str:
        base = self.webhook_base_url.rstrip("/")
        return f"{base}{path}"


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
