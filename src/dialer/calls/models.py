"""
SQLAlchemy models for call records.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dialer.shared.database import Base


class Department(str, Enum):
    """Departments an outbound call can be placed for."""

    SALES = "Sales"
    CRM = "CRM"
    COLLECTION = "Collection"
    SUPPORT = "Support"


class CallRecord(Base):
    """One row per provider call identifier."""

    __tablename__ = "calls"
    __table_args__ = (Index("idx_calls_department", "department"),)

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    call_sid: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    customer_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    department: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    status: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    duration_seconds: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    recording_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    ivr_selection: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CallRecord(call_sid={self.call_sid}, status={self.status})>"
