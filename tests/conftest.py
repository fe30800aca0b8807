"""Test fixtures for the biolink application."""

import os
import tempfile
from collections import defaultdict

# Settings are read at import time, so the environment must be set first
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SYNC_SCHEDULER_ENABLED"] = "false"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "biolink-test-logs")

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from biolink.api.dependencies import get_redis
from biolink.core.security import create_access_token
from biolink.db.session import get_db
from biolink.main import app as main_app
# Import models to ensure they're registered with SQLModel metadata
from biolink.models import ClickEvent, Link, User  # noqa: F401
from tests.utils import create_test_user


# Test database URL - using SQLite in-memory
TEST_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory SQLite engine with foreign keys enforced."""
    engine = create_async_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test. Services commit, so each test gets its own engine."""
    async with AsyncSession(bind=test_engine, expire_on_commit=False) as session:
        yield session


class MockPipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    def rpush(self, key, *values):
        self.commands.append(("rpush", key, *values))
        return self

    async def execute(self):
        results = []
        for name, *args in self.commands:
            results.append(await getattr(self.redis, name)(*args))
        self.commands = []
        return results


class MockRedis:
    """In-memory stand-in for the subset of redis.asyncio used by the app."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.lists: Dict[str, list] = defaultdict(list)
        self.expiry: Dict[str, int] = {}

    def pipeline(self):
        return MockPipeline(self)

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = str(value)
        if ex:
            self.expiry[key] = ex
        return True

    async def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    async def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    async def lpop(self, key, count=None):
        items = self.lists.get(key, [])
        if not items:
            return None
        if count is None:
            return items.pop(0)
        popped, self.lists[key] = items[:count], items[count:]
        return popped

    async def llen(self, key):
        return len(self.lists.get(key, []))

    async def ping(self):
        return True


class FailingRedis:
    """Redis client whose every command fails as if the server were down."""

    def _fail(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def _afail(self, *args, **kwargs):
        self._fail()

    def pipeline(self):
        pipe = MockPipeline(self)
        pipe.execute = self._afail
        return pipe

    get = set = incr = rpush = lpop = llen = ping = _afail


@pytest.fixture
def mock_redis():
    """Mock Redis for testing."""
    return MockRedis()


@pytest.fixture
def failing_redis():
    return FailingRedis()


@pytest_asyncio.fixture
async def test_user(test_db):
    return await create_test_user(test_db, email="owner@example.com")


@pytest_asyncio.fixture
async def other_user(test_db):
    return await create_test_user(test_db, email="someone-else@example.com")


@pytest.fixture
def auth_headers(test_user) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture
def cron_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer test-cron-secret"}


@pytest_asyncio.fixture
async def client(test_db, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with the test database and mock Redis injected."""
    async def _override_get_db():
        yield test_db

    main_app.dependency_overrides[get_db] = _override_get_db
    main_app.dependency_overrides[get_redis] = lambda: mock_redis

    async with AsyncClient(transport=ASGITransport(app=main_app), base_url="http://test") as ac:
        yield ac

    main_app.dependency_overrides.clear()
