"""
Telephony provider interface definition.

A provider places outbound calls and translates its webhook payloads into
partial call events for the call store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import anyio

from dialer.calls.reconciler import CallEventFields


@dataclass(frozen=True)
class CallInitiationRequest:
    """Request to initiate an outbound call."""

    to: str
    from_number: str
    twiml_url: str
    status_callback_url: str
    recording_callback_url: str
    record: bool = True


@dataclass(frozen=True)
class CallInitiationResponse:
    """Response from call initiation."""

    provider_call_id: str
    status: str
    created_at: datetime
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    """Parsed webhook: which call it refers to and what it tells us."""

    call_sid: str
    fields: CallEventFields
    raw_payload: dict[str, Any] = field(default_factory=dict)


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class CallInitiationError(TelephonyProviderError):
    """Error during call initiation."""


class WebhookParseError(TelephonyProviderError):
    """Error parsing webhook event."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers."""

    async def initiate_call(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        """Initiate an outbound call.

        Delegates to the sync implementation in a worker thread so the event
        loop is not blocked by the provider round trip.
        """
        return await anyio.to_thread.run_sync(self.initiate_call_sync, request)

    def close(self) -> None:
        """Release provider resources such as HTTP connection pools."""

    @abstractmethod
    def initiate_call_sync(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        """Initiate an outbound call (blocking)."""
        ...

    @abstractmethod
    def parse_status_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        """Parse a call-status webhook (progress, duration, digits)."""
        ...

    @abstractmethod
    def parse_recording_callback(self, payload: dict[str, Any]) -> WebhookEvent:
        """Parse a recording-complete webhook."""
        ...
