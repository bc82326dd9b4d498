"""
Concurrent webhook delivery against a file-backed SQLite database.

Each writer uses its own session and connection, as concurrent webhook
requests do in the running service.
"""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from dialer.calls.models import CallRecord
from dialer.calls.reconciler import CallEventFields
from dialer.calls.repository import CallRecordRepository
from dialer.shared.database import DatabaseManager


@pytest_asyncio.fixture
async def file_db(tmp_path: Path) -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'calls.db'}")
    await manager.create_schema()
    yield manager
    await manager.close()


async def _merge(db: DatabaseManager, call_sid: str, fields: CallEventFields) -> None:
    async with db.session() as session:
        await CallRecordRepository(session).merge_event(call_sid, fields)


async def _initiate(db: DatabaseManager, call_sid: str) -> None:
    async with db.session() as session:
        await CallRecordRepository(session).upsert_initial(
            call_sid, "Asha", "+15551234567", "Support"
        )


class TestConcurrentDelivery:
    @pytest.mark.asyncio
    async def test_concurrent_events_keep_one_row_and_every_field(
        self,
        file_db: DatabaseManager,
    ) -> None:
        events = [
            CallEventFields(status="completed", duration_seconds=42),
            CallEventFields(recording_url="https://x/rec.mp3"),
            CallEventFields(ivr_selection="1"),
            CallEventFields(status="completed", duration_seconds=42),
        ]

        await asyncio.gather(
            _initiate(file_db, "CA123"),
            *(_merge(file_db, "CA123", event) for event in events),
        )

        async with file_db.session() as session:
            count = (
                await session.execute(
                    select(func.count()).select_from(CallRecord).where(CallRecord.call_sid == "CA123")
                )
            ).scalar_one()
            record = await CallRecordRepository(session).get_by_call_sid("CA123")

        assert count == 1
        assert record.department == "Support"
        assert record.duration_seconds == 42
        assert record.recording_url == "https://x/rec.mp3"
        assert record.ivr_selection == "1"
        assert record.status in {"initiated", "completed"}

    @pytest.mark.asyncio
    async def test_concurrent_first_events_create_one_row(
        self,
        file_db: DatabaseManager,
    ) -> None:
        await asyncio.gather(
            *(_merge(file_db, "CA9", CallEventFields(status="ringing")) for _ in range(10))
        )

        async with file_db.session() as session:
            records = await CallRecordRepository(session).get_all()

        assert [r.call_sid for r in records] == ["CA9"]
        assert records[0].status == "ringing"
