"""
Outbound call initiation.
"""

from urllib.parse import urlencode

from dialer.calls.repository import INITIATED_STATUS, CallRecordRepositoryProtocol
from dialer.calls.schemas import StartCallRequest, StartCallResponse
from dialer.shared.exceptions import ConfigurationError
from dialer.shared.logging import get_logger
from dialer.telephony.config import (
    RECORDING_CALLBACK_PATH,
    STATUS_CALLBACK_PATH,
    TWIML_PATH,
    TelephonyConfig,
)
from dialer.telephony.interface import CallInitiationRequest, TelephonyProvider

logger = get_logger(__name__)


class CallService:
    """Places a call through the provider and records it as initiated."""

    def __init__(
        self,
        repository: CallRecordRepositoryProtocol,
        provider: TelephonyProvider,
        config: TelephonyConfig,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._config = config

    def _build_request(self, request: StartCallRequest) -> CallInitiationRequest:
        if not self._config.webhook_base_url:
            raise ConfigurationError(message="BASE_URL is not configured on the server")

        query = urlencode(
            {"customerName": request.customer_name, "department": request.department.value}
        )
        return CallInitiationRequest(
            to=request.phone_number,
            from_number=self._config.twilio_from_number,
            twiml_url=f"{self._config.get_webhook_url(TWIML_PATH)}?{query}",
            status_callback_url=self._config.get_webhook_url(STATUS_CALLBACK_PATH),
            recording_callback_url=self._config.get_webhook_url(RECORDING_CALLBACK_PATH),
        )

    async def start_call(self, request: StartCallRequest) -> StartCallResponse:
        """Initiate the call, then store the initial record.

        Raises:
            ConfigurationError: If no public base URL is configured.
            CallInitiationError: If the provider rejects the call.
            StorageError: If the initial record cannot be written.
        """
        initiation = self._build_request(request)
        response = await self._provider.initiate_call(initiation)

        logger.info(
            "Outbound call placed",
            extra={
                "call_sid": response.provider_call_id,
                "department": request.department.value,
            },
        )

        await self._repository.upsert_initial(
            call_sid=response.provider_call_id,
            customer_name=request.customer_name,
            phone_number=request.phone_number,
            department=request.department,
            status=INITIATED_STATUS,
        )
        return StartCallResponse(call_sid=response.provider_call_id)
