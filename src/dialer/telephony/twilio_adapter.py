"""
Twilio telephony provider adapter.

Places calls through the Twilio REST API with httpx and maps Twilio's
form-encoded status and recording callbacks onto call events.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from dialer.calls.reconciler import CallEventFields, normalize_text
from dialer.telephony.config import TelephonyConfig, get_telephony_config
from dialer.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    CallInitiationResponse,
    TelephonyProvider,
    WebhookEvent,
    WebhookParseError,
)

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed", "failed", "busy"]
RECORDING_CALLBACK_EVENTS = ["completed"]


def _require_call_sid(payload: dict[str, Any]) -> str:
    call_sid = normalize_text(payload.get("CallSid"))
    if call_sid is None:
        raise WebhookParseError(
            message="Missing CallSid in webhook payload",
            error_code="MISSING_CALL_SID",
            provider_response=payload,
        )
    return call_sid


def parse_status_payload(payload: dict[str, Any]) -> WebhookEvent:
    """Map a Twilio status callback (or <Gather> action) to a call event.

    Twilio posts both progress callbacks and the IVR <Gather> result to the
    status route; the latter carries Digits.
    """
    call_sid = _require_call_sid(payload)
    status = normalize_text(payload.get("CallStatus"))
    fields = CallEventFields.from_raw(
        phone_number=payload.get("To"),
        status=status.lower() if status else None,
        duration=payload.get("CallDuration"),
        ivr_selection=payload.get("Digits"),
    )
    return WebhookEvent(call_sid=call_sid, fields=fields, raw_payload=payload)


def parse_recording_payload(payload: dict[str, Any]) -> WebhookEvent:
    """Map a Twilio recording status callback to a call event."""
    call_sid = _require_call_sid(payload)
    fields = CallEventFields.from_raw(recording_url=payload.get("RecordingUrl"))
    return WebhookEvent(call_sid=call_sid, fields=fields, raw_payload=payload)


class TwilioAdapter(TelephonyProvider):
    """Twilio telephony provider adapter.

    Uses a sync httpx client; the async entrypoint inherited from
    TelephonyProvider runs it in a worker thread.
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
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self._config.http_timeout_seconds)
            )
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _get_auth(self) -> tuple[str, str]:
        return (self._config.twilio_account_sid, self._config.twilio_auth_token)

    def _get_api_url(self, endpoint: str) -> str:
        base = self._config.twilio_api_base_url.rstrip("/")
        account_sid = self._config.twilio_account_sid
        return f"{base}/2010-04-01/Accounts/{account_sid}{endpoint}"

    def _check_configured(self) -> None:
        if not (self._config.twilio_account_sid and self._config.twilio_auth_token):
            raise CallInitiationError(
                message="Twilio client not initialized. Check TELEPHONY_TWILIO_ACCOUNT_SID and TELEPHONY_TWILIO_AUTH_TOKEN.",
                error_code="NOT_CONFIGURED",
            )
        if not self._config.twilio_from_number:
            raise CallInitiationError(
                message="TELEPHONY_TWILIO_FROM_NUMBER is not configured.",
                error_code="NOT_CONFIGURED",
            )

    def initiate_call_sync(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        """Initiate an outbound call via Twilio (sync)."""
        self._check_configured()
        client = self._get_client()

        payload: dict[str, Any] = {
            "To": request.to,
            "From": request.from_number or self._config.twilio_from_number,
            "Url": request.twiml_url,
            "StatusCallback": request.status_callback_url,
            "StatusCallbackMethod": "POST",
            "StatusCallbackEvent": STATUS_CALLBACK_EVENTS,
        }
        if request.record:
            payload.update(
                {
                    "Record": "true",
                    "RecordingStatusCallback": request.recording_callback_url,
                    "RecordingStatusCallbackMethod": "POST",
                    "RecordingStatusCallbackEvent": RECORDING_CALLBACK_EVENTS,
                }
            )

        logger.info("Initiating Twilio call", extra={"to": request.to})

        try:
            response = client.post(
                self._get_api_url("/Calls.json"),
                data=payload,
                auth=self._get_auth(),
            )
        except httpx.HTTPError as e:
            logger.exception("HTTP error during Twilio call initiation")
            raise CallInitiationError(
                message=f"HTTP error: {e!s}",
                error_code="HTTP_ERROR",
            ) from e

        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"message": response.text}
            logger.error(
                "Twilio call initiation failed",
                extra={"status_code": response.status_code, "error": error_data},
            )
            raise CallInitiationError(
                message=error_data.get("message", "Call initiation failed"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        data = response.json()
        created_at = datetime.now(timezone.utc)
        if data.get("date_created"):
            try:
                created_at = datetime.fromisoformat(data["date_created"].replace("Z", "+00:00"))
            except ValueError:
                # Twilio's REST API uses RFC 2822 dates
                pass

        logger.info("Twilio call created", extra={"call_sid": data["sid"]})
        return CallInitiationResponse(
            provider_call_id=data["sid"],
            status=data.get("status", "queued"),
            created_at=created_at,
            raw_response=data,
        )

    def parse_status_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_status_payload(payload)

    def parse_recording_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_recording_payload(payload)
