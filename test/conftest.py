"""
Pytest configuration and fixtures.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from dialer.calls.repository import CallRecordRepository
from dialer.main import create_app
from dialer.shared.database import DatabaseManager
from dialer.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from dialer.telephony.factory import get_telephony_provider
from dialer.telephony.mock_adapter import MockTelephonyAdapter

WEBHOOK_BASE_URL = "https://dialer.example.com"
FROM_NUMBER = "+15550000000"


@pytest_asyncio.fixture
async def db_manager() -> AsyncGenerator[DatabaseManager, None]:
    """In-memory SQLite database shared by every session of one test."""
    manager = DatabaseManager(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager: DatabaseManager) -> AsyncGenerator[AsyncSession, None]:
    async with db_manager.session() as session:
        yield session


@pytest_asyncio.fixture
async def repository(db_session: AsyncSession) -> CallRecordRepository:
    return CallRecordRepository(db_session)


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.MOCK,
        webhook_base_url=WEBHOOK_BASE_URL,
        twilio_from_number=FROM_NUMBER,
    )


@pytest.fixture
def mock_provider() -> MockTelephonyAdapter:
    return MockTelephonyAdapter()


@pytest.fixture
def app(
    db_manager: DatabaseManager,
    mock_provider: MockTelephonyAdapter,
    telephony_config: TelephonyConfig,
) -> FastAPI:
    """Application wired to the test database and the mock provider.

    ASGITransport does not run the lifespan, so app state is set here.
    """
    application = create_app()
    application.state.db = db_manager
    application.dependency_overrides[get_telephony_provider] = lambda: mock_provider
    application.dependency_overrides[get_telephony_config] = lambda: telephony_config
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
