import os

# Set required env vars BEFORE any app imports trigger Settings()
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("OUTSOURCE_API_BASE_URL", "http://outsource.test")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("CROP_START_YEAR", "2024")
os.environ.setdefault("CROP_END_YEAR", "2024")

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from agrisync.main import app
from agrisync.database import Base, get_db
from agrisync.services.api_client import OutsourceClient
from agrisync.dependencies import get_gate
from agrisync.services.scheduler import SchedulerGate

from helpers import FakeSleep, FakeTokens

TEST_DB = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    # One shared connection so every session sees the same in-memory database.
    engine = create_async_engine(
        TEST_DB,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_outsource():
    """Build an OutsourceClient whose transport is the given handler."""
    def factory(handler, tokens=None, sleep=None):
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://outsource.test"
        )
        return OutsourceClient(
            http,
            tokens or FakeTokens(),
            max_retries=3,
            default_retry_after=60,
            sleep=sleep or FakeSleep(),
        )

    yield factory


@pytest_asyncio.fixture
async def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    gate = SchedulerGate([])
    app.dependency_overrides[get_gate] = lambda: gate

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
