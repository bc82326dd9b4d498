"""
Mock telephony provider adapter for testing and local runs.

Speaks the same webhook wire format as Twilio so the webhook routes can be
exercised without a provider account.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from dialer.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    CallInitiationResponse,
    TelephonyProvider,
    WebhookEvent,
)
from dialer.telephony.twilio_adapter import parse_recording_payload, parse_status_payload

logger = logging.getLogger(__name__)


class MockTelephonyAdapter(TelephonyProvider):
    """Mock telephony provider."""

    def __init__(self) -> None:
        self._calls: list[CallInitiationRequest] = []
        self._next_call_id: int = 1
        self._should_fail: bool = False
        self._fail_error: str = "Mock failure"
        self._fail_code: str = "MOCK_ERROR"

    def reset(self) -> None:
        self._calls.clear()
        self._next_call_id = 1
        self._should_fail = False
        self._fail_error = "Mock failure"
        self._fail_code = "MOCK_ERROR"

    def configure_failure(
        self,
        should_fail: bool = True,
        error_message: str = "Mock failure",
        error_code: str = "MOCK_ERROR",
    ) -> None:
        self._should_fail = should_fail
        self._fail_error = error_message
        self._fail_code = error_code

    @property
    def calls(self) -> list[CallInitiationRequest]:
        return self._calls.copy()

    def get_last_call(self) -> CallInitiationRequest | None:
        return self._calls[-1] if self._calls else None

    def initiate_call_sync(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        logger.info("Mock: Initiating call", extra={"to": request.to})

        if self._should_fail:
            raise CallInitiationError(
                message=self._fail_error,
                error_code=self._fail_code,
            )

        self._calls.append(request)

        provider_call_id = f"MOCK_CALL_{self._next_call_id:06d}"
        self._next_call_id += 1

        return CallInitiationResponse(
            provider_call_id=provider_call_id,
            status="queued",
            created_at=datetime.now(timezone.utc),
            raw_response={"mock": True, "sid": provider_call_id},
        )

    def parse_status_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_status_payload(payload)

    def parse_recording_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_recording_payload(payload)
