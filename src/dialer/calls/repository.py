"""
Repository for call record database operations.

Every write is a single INSERT ... ON CONFLICT (call_sid) DO UPDATE statement
committed on its own, so concurrent writers for the same call serialize on
the row and no update is lost to a Python-side read-modify-write.

Core statements bypass the session identity map, so ORM reads use
populate_existing to refresh instances the session already holds.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dialer.calls.models import CallRecord, Department
from dialer.calls.reconciler import CallEventFields, merge_assignments
from dialer.shared.exceptions import InvalidDepartmentError, StorageError

T = TypeVar("T")

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

INITIATED_STATUS = "initiated"


@dataclass(frozen=True)
class RecordingLookup:
    """Recording location for one call."""

    call_sid: str
    recording_url: str | None


def coerce_department(department: Department | str | None) -> Department:
    """Validate a department name.

    Raises:
        InvalidDepartmentError: If the value is not one of the allowed departments.
    """
    if isinstance(department, Department):
        return department
    try:
        return Department(department)
    except ValueError as exc:
        raise InvalidDepartmentError(department) from exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallRecordRepositoryProtocol(Protocol):
    """Protocol for call record store operations."""

    async def upsert_initial(
        self,
        call_sid: str,
        customer_name: str,
        phone_number: str,
        department: Department | str,
        status: str = INITIATED_STATUS,
    ) -> None:
        """Create or authoritatively reset the record for a new call."""
        ...

    async def merge_event(self, call_sid: str, fields: CallEventFields) -> None:
        """Fold a partial webhook event into the record."""
        ...

    async def get_all(self) -> Sequence[CallRecord]:
        """All records, newest first."""
        ...

    async def get_by_department(self, department: Department | str) -> Sequence[CallRecord]:
        """Records of one department, newest first."""
        ...

    async def get_recording(self, call_sid: str) -> RecordingLookup | None:
        """Recording URL for a call, or None when the call is unknown."""
        ...


class CallRecordRepository:
    """Repository for call record database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    def _insert(self, call_sid: str | None, operation: str) -> Callable[..., Any]:
        dialect = self._session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise StorageError(
                message=f"Unsupported database dialect: {dialect}",
                call_sid=call_sid,
                operation=operation,
            )
        return insert

    async def _write(self, stmt: Any, call_sid: str, operation: str) -> None:
        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise StorageError(
                message=f"{operation} failed for call {call_sid}",
                call_sid=call_sid,
                operation=operation,
            ) from exc

    async def _read(
        self,
        query: Callable[[], Awaitable[T]],
        operation: str,
        call_sid: str | None = None,
    ) -> T:
        try:
            return await query()
        except SQLAlchemyError as exc:
            raise StorageError(
                message=f"{operation} failed",
                call_sid=call_sid,
                operation=operation,
            ) from exc

    async def upsert_initial(
        self,
        call_sid: str,
        customer_name: str,
        phone_number: str,
        department: Department | str,
        status: str = INITIATED_STATUS,
    ) -> None:
        """Create the record for a freshly initiated call.

        A duplicate initiation for the same call_sid is a correction: it
        overwrites customer name, phone number, department and status, and
        keeps duration, recording and IVR selection.

        Args:
            call_sid: Provider call identifier.
            customer_name: Callee name.
            phone_number: Dialled number.
            department: Department placing the call.
            status: Initial status label.

        Raises:
            InvalidDepartmentError: If department is not allowed.
            StorageError: If the write fails.
        """
        dept = coerce_department(department)
        now = _utcnow()
        insert = self._insert(call_sid, "upsert_initial")

        stmt = insert(CallRecord).values(
            call_sid=call_sid,
            customer_name=customer_name,
            phone_number=phone_number,
            department=dept.value,
            status=status,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["call_sid"],
            set_={
                "customer_name": stmt.excluded.customer_name,
                "phone_number": stmt.excluded.phone_number,
                "department": stmt.excluded.department,
                "status": stmt.excluded.status,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._write(stmt, call_sid, "upsert_initial")

    async def merge_event(self, call_sid: str, fields: CallEventFields) -> None:
        """Fold a partial webhook event into the record for call_sid.

        Creates a minimal record when none exists yet; otherwise applies the
        reconciler's merge policy inside the upsert statement.

        Args:
            call_sid: Provider call identifier.
            fields: Fields carried by the event.

        Raises:
            StorageError: If the write fails.
        """
        now = _utcnow()
        insert = self._insert(call_sid, "merge_event")

        stmt = insert(CallRecord).values(
            call_sid=call_sid,
            created_at=now,
            updated_at=now,
            **asdict(fields),
        )
        assignments: dict[str, Any] = merge_assignments(stmt.excluded, CallRecord.__table__.c)
        assignments["updated_at"] = stmt.excluded.updated_at
        stmt = stmt.on_conflict_do_update(index_elements=["call_sid"], set_=assignments)
        await self._write(stmt, call_sid, "merge_event")

    async def get_by_call_sid(self, call_sid: str) -> CallRecord | None:
        """Get a record by provider call identifier."""

        async def query() -> CallRecord | None:
            stmt = (
                select(CallRecord)
                .where(CallRecord.call_sid == call_sid)
                .execution_options(populate_existing=True)
            )
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none()

        return await self._read(query, "get_by_call_sid", call_sid)

    async def get_all(self) -> Sequence[CallRecord]:
        """Get all records ordered by creation time, newest first."""

        async def query() -> Sequence[CallRecord]:
            stmt = (
                select(CallRecord)
                .order_by(CallRecord.created_at.desc(), CallRecord.id.desc())
                .execution_options(populate_existing=True)
            )
            result = await self._session.execute(stmt)
            return result.scalars().all()

        return await self._read(query, "get_all")

    async def get_by_department(self, department: Department | str) -> Sequence[CallRecord]:
        """Get records for one department, newest first.

        Raises:
            InvalidDepartmentError: If department is not allowed.
        """
        dept = coerce_department(department)

        async def query() -> Sequence[CallRecord]:
            stmt = (
                select(CallRecord)
                .where(CallRecord.department == dept.value)
                .order_by(CallRecord.created_at.desc(), CallRecord.id.desc())
                .execution_options(populate_existing=True)
            )
            result = await self._session.execute(stmt)
            return result.scalars().all()

        return await self._read(query, "get_by_department")

    async def get_recording(self, call_sid: str) -> RecordingLookup | None:
        """Get the recording URL for a call.

        Returns:
            RecordingLookup if the call is known, None otherwise. A known call
            whose recording has not arrived yet has recording_url None.
        """

        async def query() -> RecordingLookup | None:
            stmt = select(CallRecord.call_sid, CallRecord.recording_url).where(
                CallRecord.call_sid == call_sid
            )
            row = (await self._session.execute(stmt)).one_or_none()
            if row is None:
                return None
            return RecordingLookup(call_sid=row.call_sid, recording_url=row.recording_url)

        return await self._read(query, "get_recording", call_sid)
