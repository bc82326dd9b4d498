"""
Webhook event handler for provider call callbacks.

Provider webhooks are delivered at least once and in no particular order.
The handler folds each one into the call store and never lets a local
failure reach the provider: a failed or malformed webhook is logged and
acknowledged so the provider does not retry-storm.
"""

from typing import Any

from dialer.calls.repository import CallRecordRepositoryProtocol
from dialer.shared.exceptions import StorageError
from dialer.shared.logging import get_logger
from dialer.telephony.interface import TelephonyProvider, WebhookEvent, WebhookParseError

logger = get_logger(__name__)


class WebhookHandler:
    """Handler for call-status and recording-complete webhooks."""

    def __init__(
        self,
        repository: CallRecordRepositoryProtocol,
        provider: TelephonyProvider,
    ) -> None:
        """Initialize webhook handler.

        Args:
            repository: Call record store.
            provider: Provider whose payload format is parsed.
        """
        self._repository = repository
        self._provider = provider

    async def handle_call_status(self, payload: dict[str, Any]) -> bool:
        """Apply a call-status webhook.

        Returns:
            True if the event was merged into the store.
        """
        try:
            event = self._provider.parse_status_callback(payload)
        except WebhookParseError as exc:
            logger.warning(
                "call-status webhook without CallSid",
                extra={"error_code": exc.error_code},
            )
            return False
        return await self._apply(event, "call_status")

    async def handle_recording_complete(self, payload: dict[str, Any]) -> bool:
        """Apply a recording-complete webhook.

        Returns:
            True if the event was merged into the store.
        """
        try:
            event = self._provider.parse_recording_callback(payload)
        except WebhookParseError as exc:
            logger.warning(
                "record-complete webhook without CallSid",
                extra={"error_code": exc.error_code},
            )
            return False
        return await self._apply(event, "recording_complete")

    async def _apply(self, event: WebhookEvent, source: str) -> bool:
        logger.info(
            "Processing telephony webhook",
            extra={
                "call_sid": event.call_sid,
                "source": source,
                "fields": sorted(event.fields.known_fields()),
            },
        )
        try:
            await self._repository.merge_event(event.call_sid, event.fields)
        except StorageError as exc:
            logger.error(
                "Failed to merge webhook into call record",
                extra={
                    "call_sid": exc.call_sid,
                    "operation": exc.operation,
                    "source": source,
                },
                exc_info=True,
            )
            return False
        return True
