"""
Pydantic schemas for the call API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dialer.calls.models import CallRecord, Department


class CallRecordOut(BaseModel):
    """Call record as returned by the dashboard API."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    call_sid: str = Field(alias="callSid")
    customer_name: str | None = Field(default=None, alias="customerName")
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    department: str | None = None
    status: str | None = None
    duration_seconds: int | None = Field(default=None, alias="duration")
    recording_url: str | None = Field(default=None, alias="recordingUrl")
    ivr_selection: str | None = Field(default=None, alias="ivrSelection")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_record(cls, record: CallRecord) -> "CallRecordOut":
        return cls(
            id=record.id,
            call_sid=record.call_sid,
            customer_name=record.customer_name,
            phone_number=record.phone_number,
            department=record.department,
            status=record.status,
            duration_seconds=record.duration_seconds,
            recording_url=record.recording_url,
            ivr_selection=record.ivr_selection,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class RecordingOut(BaseModel):
    """Recording lookup result."""

    model_config = ConfigDict(populate_by_name=True)

    call_sid: str = Field(alias="callSid")
    recording_url: str | None = Field(default=None, alias="recordingUrl")


class StartCallRequest(BaseModel):
    """Body of POST /start-call."""

    model_config = ConfigDict(populate_by_name=True)

    customer_name: str = Field(
        ...,
        alias="customerName",
        max_length=255,
        description="Name used in the voice menu greeting",
    )
    phone_number: str = Field(
        ...,
        alias="phoneNumber",
        max_length=64,
        description="Number to dial",
    )
    department: Department = Field(
        ...,
        description="Department placing the call",
    )

    @field_validator("customer_name", "phone_number", mode="before")
    @classmethod
    def strip_required_text(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class StartCallResponse(BaseModel):
    """Response of POST /start-call."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Call started"
    call_sid: str = Field(alias="callSid")
