import os

# Settings are read at import time, so the test environment must be in place
# before anything from ``warden`` is imported.
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-0123456789"
os.environ["LOG_HASH_SECRET"] = "test-log-hash-secret"
os.environ["LOG_ENCRYPTION_KEY"] = "test-log-encryption-key"
os.environ["BCRYPT_WORK_FACTOR"] = "4"
os.environ["EMAIL_DISPATCHER_ENABLED"] = "false"
os.environ["ENUMERATION_MIN_DELAY_MS"] = "0"
os.environ["ENUMERATION_MAX_JITTER_MS"] = "5"
os.environ["LOG_JSON"] = "false"
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["DEFAULT_ADMIN_EMAIL"] = ""
os.environ["DEFAULT_ADMIN_PASSWORD"] = ""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tests.utils.api_client import ApiClient
from warden.infrastructure.database.async_db import (
    AsyncSessionFactory,
    create_async_db_and_tables,
    drop_async_db_and_tables,
)
from warden.main import app


@pytest_asyncio.fixture(autouse=True)
async def database():
    """Fresh schema for every test."""
    await create_async_db_and_tables()
    yield
    await drop_async_db_and_tables()


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionFactory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def api(async_client: AsyncClient) -> ApiClient:
    return ApiClient(async_client)


@pytest_asyncio.fixture
async def other_api() -> ApiClient:
    """A second browser with its own cookie jar, for journeys involving two users."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield ApiClient(client)
