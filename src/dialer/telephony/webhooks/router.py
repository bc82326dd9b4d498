"""
FastAPI router for provider-facing endpoints.

Key constraints:
- The provider must always receive 200, even for malformed or unknown calls
- No provider round trips inside a webhook
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from dialer.calls.repository import CallRecordRepository
from dialer.calls.router import get_call_repository
from dialer.shared.logging import get_logger
from dialer.telephony.config import (
    RECORDING_CALLBACK_PATH,
    STATUS_CALLBACK_PATH,
    TWIML_PATH,
    TelephonyConfig,
    get_telephony_config,
)
from dialer.telephony.factory import get_telephony_provider
from dialer.telephony.interface import TelephonyProvider
from dialer.telephony.twiml import FALLBACK_TWIML, build_voice_menu
from dialer.telephony.webhooks.handler import WebhookHandler

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


def get_webhook_handler(
    repository: Annotated[CallRecordRepository, Depends(get_call_repository)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
) -> WebhookHandler:
    return WebhookHandler(repository=repository, provider=provider)


async def _read_payload(request: Request) -> dict[str, Any]:
    """Build the payload from query params overlaid by the body (form or JSON)."""
    payload: dict[str, Any] = dict(request.query_params)
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            body = await request.json()
            if isinstance(body, dict):
                payload.update(body)
        else:
            payload.update(dict(await request.form()))
    except Exception:
        logger.warning(
            "Unreadable webhook body",
            extra={"path": request.url.path, "content_type": content_type},
        )
    return payload


@router.post(STATUS_CALLBACK_PATH, status_code=status.HTTP_200_OK)
async def call_status_webhook(
    request: Request,
    handler: Annotated[WebhookHandler, Depends(get_webhook_handler)],
) -> Response:
    payload = await _read_payload(request)
    await handler.handle_call_status(payload)
    return Response(status_code=status.HTTP_200_OK)


@router.post(RECORDING_CALLBACK_PATH, status_code=status.HTTP_200_OK)
async def record_complete_webhook(
    request: Request,
    handler: Annotated[WebhookHandler, Depends(get_webhook_handler)],
) -> Response:
    payload = await _read_payload(request)
    await handler.handle_recording_complete(payload)
    return Response(status_code=status.HTTP_200_OK)


@router.api_route(TWIML_PATH, methods=["GET", "POST"])
async def twiml(
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
    customer_name: Annotated[str, Query(alias="customerName")] = "Customer",
    department: Annotated[str, Query()] = "Sales",
) -> Response:
    action_url = (
        config.get_webhook_url(STATUS_CALLBACK_PATH)
        if config.webhook_base_url
        else STATUS_CALLBACK_PATH
    )
    try:
        content = build_voice_menu(customer_name, department, action_url=action_url)
    except Exception:
        logger.exception("Error building TwiML")
        content = FALLBACK_TWIML
    return Response(content=content, media_type="text/xml")
