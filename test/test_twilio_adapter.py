"""Tests for Twilio telephony adapter (sync, no DB)."""

from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

from dialer.telephony.config import ProviderType, TelephonyConfig
from dialer.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    WebhookParseError,
)
from dialer.telephony.twilio_adapter import (
    RECORDING_CALLBACK_EVENTS,
    STATUS_CALLBACK_EVENTS,
    TwilioAdapter,
    parse_recording_payload,
    parse_status_payload,
)


@pytest.fixture
def twilio_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.TWILIO,
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token="test_auth_token_12345",
        twilio_from_number="+14155550000",
        twilio_api_base_url="https://api.twilio.test",
        webhook_base_url="https://example.com",
    )


@pytest.fixture
def call_request() -> CallInitiationRequest:
    return CallInitiationRequest(
        to="+14155551234",
        from_number="+14155550000",
        twiml_url="https://example.com/twiml?customerName=Asha&department=Sales",
        status_callback_url="https://example.com/call-status",
        recording_callback_url="https://example.com/record-complete",
    )


def _adapter(config: TelephonyConfig, handler) -> TwilioAdapter:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TwilioAdapter(config=config, http_client=client)


class TestTwilioAdapterInitiateCallSync:
    def test_initiate_call_success(
        self,
        twilio_config: TelephonyConfig,
        call_request: CallInitiationRequest,
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                201,
                json={
                    "sid": "CA_TEST_CALL_SID_123",
                    "status": "queued",
                    "date_created": "2024-01-15T10:30:00Z",
                },
            )

        adapter = _adapter(twilio_config, handler)
        response = adapter.initiate_call_sync(call_request)

        assert response.provider_call_id == "CA_TEST_CALL_SID_123"
        assert response.status == "queued"
        assert response.created_at.year == 2024
        assert response.raw_response["sid"] == "CA_TEST_CALL_SID_123"

        assert len(seen) == 1
        sent = seen[0]
        assert sent.method == "POST"
        assert str(sent.url) == (
            "https://api.twilio.test/2010-04-01/Accounts/AC_TEST_ACCOUNT_SID/Calls.json"
        )
        assert sent.headers["authorization"].startswith("Basic ")

        form = parse_qs(sent.content.decode())
        assert form["To"] == ["+14155551234"]
        assert form["From"] == ["+14155550000"]
        assert form["Url"] == [call_request.twiml_url]
        assert form["StatusCallback"] == ["https://example.com/call-status"]
        assert form["StatusCallbackEvent"] == STATUS_CALLBACK_EVENTS
        assert form["Record"] == ["true"]
        assert form["RecordingStatusCallback"] == ["https://example.com/record-complete"]
        assert form["RecordingStatusCallbackEvent"] == RECORDING_CALLBACK_EVENTS

    def test_initiate_call_without_recording(
        self,
        twilio_config: TelephonyConfig,
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"sid": "CA1"})

        request = CallInitiationRequest(
            to="+14155551234",
            from_number="",
            twiml_url="https://example.com/twiml",
            status_callback_url="https://example.com/call-status",
            recording_callback_url="https://example.com/record-complete",
            record=False,
        )
        response = _adapter(twilio_config, handler).initiate_call_sync(request)

        form = parse_qs(seen[0].content.decode())
        assert "Record" not in form
        assert form["From"] == ["+14155550000"]
        assert response.status == "queued"

    def test_initiate_call_api_error(
        self,
        twilio_config: TelephonyConfig,
        call_request: CallInitiationRequest,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={"code": 21211, "message": "Invalid 'To' Phone Number"},
            )

        adapter = _adapter(twilio_config, handler)

        with pytest.raises(CallInitiationError) as exc_info:
            adapter.initiate_call_sync(call_request)

        assert "Invalid 'To' Phone Number" in str(exc_info.value)
        assert exc_info.value.error_code == "21211"
        assert exc_info.value.provider_response["code"] == 21211

    def test_initiate_call_http_error(
        self,
        twilio_config: TelephonyConfig,
        call_request: CallInitiationRequest,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        adapter = _adapter(twilio_config, handler)

        with pytest.raises(CallInitiationError) as exc_info:
            adapter.initiate_call_sync(call_request)

        assert exc_info.value.error_code == "HTTP_ERROR"

    @pytest.mark.parametrize(
        "missing",
        ["twilio_account_sid", "twilio_auth_token", "twilio_from_number"],
    )
    def test_initiate_call_not_configured(
        self,
        twilio_config: TelephonyConfig,
        call_request: CallInitiationRequest,
        missing: str,
    ) -> None:
        config = twilio_config.model_copy(update={missing: ""})
        mock_client = MagicMock(spec=httpx.Client)
        adapter = TwilioAdapter(config=config, http_client=mock_client)

        with pytest.raises(CallInitiationError) as exc_info:
            adapter.initiate_call_sync(call_request)

        assert exc_info.value.error_code == "NOT_CONFIGURED"
        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_initiate_call_async_runs_sync_body(
        self,
        twilio_config: TelephonyConfig,
        call_request: CallInitiationRequest,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"sid": "CA_ASYNC", "status": "queued"})

        response = await _adapter(twilio_config, handler).initiate_call(call_request)

        assert response.provider_call_id == "CA_ASYNC"


class TestTwilioWebhookParsing:
    def test_parse_status_callback(self) -> None:
        event = parse_status_payload(
            {
                "CallSid": "CA123",
                "CallStatus": "completed",
                "CallDuration": "42",
                "To": "+14155551234",
                "From": "+14155550000",
            }
        )

        assert event.call_sid == "CA123"
        assert event.fields.status == "completed"
        assert event.fields.duration_seconds == 42
        assert event.fields.phone_number == "+14155551234"
        assert event.fields.recording_url is None
        assert event.raw_payload["From"] == "+14155550000"

    def test_parse_gather_action(self) -> None:
        event = parse_status_payload(
            {"CallSid": "CA123", "CallStatus": "in-progress", "Digits": "3"}
        )

        assert event.fields.ivr_selection == "3"
        assert event.fields.status == "in-progress"

    def test_parse_status_unparseable_duration(self) -> None:
        event = parse_status_payload({"CallSid": "CA123", "CallDuration": "n/a"})

        assert event.fields.duration_seconds is None
        assert event.fields.is_empty()

    def test_parse_recording_callback(self) -> None:
        event = parse_recording_payload(
            {
                "CallSid": "CA123",
                "RecordingUrl": "https://api.twilio.com/rec/RE1",
                "RecordingStatus": "completed",
            }
        )

        assert event.call_sid == "CA123"
        assert event.fields.known_fields() == {"recording_url": "https://api.twilio.com/rec/RE1"}

    @pytest.mark.parametrize("payload", [{}, {"CallSid": ""}, {"CallSid": "   "}])
    def test_missing_call_sid(self, payload: dict) -> None:
        with pytest.raises(WebhookParseError) as exc_info:
            parse_status_payload(payload)

        assert exc_info.value.error_code == "MISSING_CALL_SID"

    def test_adapter_delegates_parsing(self, twilio_config: TelephonyConfig) -> None:
        adapter = TwilioAdapter(config=twilio_config, http_client=MagicMock(spec=httpx.Client))

        status = adapter.parse_status_callback({"CallSid": "CA1", "CallStatus": "busy"})
        recording = adapter.parse_recording_callback({"CallSid": "CA1", "RecordingUrl": "u"})

        assert status.fields.status == "busy"
        assert recording.fields.recording_url == "u"


class TestTwilioAdapterLifecycle:
    def test_close_releases_owned_client(self, twilio_config: TelephonyConfig) -> None:
        adapter = TwilioAdapter(config=twilio_config)
        client = adapter._get_client()

        adapter.close()

        assert client.is_closed

    def test_close_leaves_injected_client_open(self, twilio_config: TelephonyConfig) -> None:
        client = httpx.Client()
        adapter = TwilioAdapter(config=twilio_config, http_client=client)

        adapter.close()

        assert not client.is_closed
        client.close()
