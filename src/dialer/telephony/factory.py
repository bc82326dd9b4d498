"""
Telephony provider factory.

Configuration comes from TelephonyConfig (pydantic-settings); never read
raw TELEPHONY_* environment variables here.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from dialer.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from dialer.telephony.interface import TelephonyProvider
from dialer.telephony.mock_adapter import MockTelephonyAdapter
from dialer.telephony.twilio_adapter import TwilioAdapter

logger = logging.getLogger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


def build_telephony_provider(cfg: TelephonyConfig) -> TelephonyProvider:
    """Create the provider selected by cfg."""
    logger.info(
        "Telephony config resolved",
        extra={
            "provider_type": cfg.provider_type.value,
            "twilio_account_sid": _mask(cfg.twilio_account_sid),
            "twilio_from_number": cfg.twilio_from_number,
            "webhook_base_url": cfg.webhook_base_url,
        },
    )

    if cfg.provider_type == ProviderType.TWILIO:
        if not (cfg.twilio_account_sid and cfg.twilio_auth_token):
            logger.warning(
                "Twilio credentials are not fully configured. Outbound calls will fail until configured."
            )
        return TwilioAdapter(cfg)

    if cfg.provider_type == ProviderType.MOCK:
        return MockTelephonyAdapter()

    raise ValueError(f"Unsupported telephony provider_type: {cfg.provider_type}")


@lru_cache(maxsize=1)
def get_telephony_provider() -> TelephonyProvider:
    """Create and cache the telephony provider (FastAPI dependency)."""
    return build_telephony_provider(get_telephony_config())
