"""
Call API router: outbound call initiation and dashboard reads.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dialer.calls.repository import CallRecordRepository
from dialer.calls.schemas import (
    CallRecordOut,
    RecordingOut,
    StartCallRequest,
    StartCallResponse,
)
from dialer.calls.service import CallService
from dialer.shared.database import get_db_session
from dialer.shared.exceptions import NotFoundError
from dialer.telephony.config import TelephonyConfig, get_telephony_config
from dialer.telephony.factory import get_telephony_provider
from dialer.telephony.interface import TelephonyProvider

router = APIRouter(tags=["calls"])


def get_call_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CallRecordRepository:
    return CallRecordRepository(session)


def get_call_service(
    repository: Annotated[CallRecordRepository, Depends(get_call_repository)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> CallService:
    return CallService(repository=repository, provider=provider, config=config)


@router.post("/start-call", response_model=StartCallResponse)
async def start_call(
    body: StartCallRequest,
    service: Annotated[CallService, Depends(get_call_service)],
) -> StartCallResponse:
    return await service.start_call(body)


@router.get("/calls", response_model=list[CallRecordOut])
async def list_calls(
    repository: Annotated[CallRecordRepository, Depends(get_call_repository)],
) -> list[CallRecordOut]:
    records = await repository.get_all()
    return [CallRecordOut.from_record(r) for r in records]


@router.get("/calls/{department}", response_model=list[CallRecordOut])
async def list_calls_by_department(
    department: str,
    repository: Annotated[CallRecordRepository, Depends(get_call_repository)],
) -> list[CallRecordOut]:
    records = await repository.get_by_department(department)
    return [CallRecordOut.from_record(r) for r in records]


@router.get("/recordings/{call_sid}", response_model=RecordingOut)
async def get_recording(
    call_sid: str,
    repository: Annotated[CallRecordRepository, Depends(get_call_repository)],
) -> RecordingOut:
    lookup = await repository.get_recording(call_sid)
    if lookup is None:
        raise NotFoundError(message=f"Call not found: {call_sid}")
    return RecordingOut(call_sid=lookup.call_sid, recording_url=lookup.recording_url)
