"""Shared fixtures: a throwaway SQLite database, an in-memory Redis double and an HTTP client."""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="linkdeck-tests-")

# Settings are read once at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/linkdeck.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SESSION_EXPIRE_MINUTES"] = "30"
os.environ["ADMIN_PASSWORD"] = ""
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ["SENTRY_DSN"] = ""
os.environ["OTLP_ENDPOINT"] = ""

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

import linkdeck.models  # noqa: E402, F401
from linkdeck.aggregators import stats_aggregator  # noqa: E402
from linkdeck.core import redis as redis_module  # noqa: E402
from linkdeck.core.database import Base, async_session_factory, engine  # noqa: E402
from linkdeck.main import app  # noqa: E402
from linkdeck.models.user import User, UserRole  # noqa: E402
from tests.factories import auth_headers, create_user  # noqa: E402


class FakeRedis:
    """The handful of Redis commands the application uses, backed by a dict.

    Keys written with a TTL expire against a manual clock moved by
    ``advance()``.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.clock = 0.0
        self._expires_at: dict[str, float] = {}

    def advance(self, seconds: float) -> None:
        self.clock += seconds

    def _live(self, key: str) -> bool:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= self.clock:
            self.store.pop(key, None)
            del self._expires_at[key]
        return key in self.store

    async def get(self, key: str) -> str | None:
        return self.store[key] if self._live(key) else None

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = str(value)
        self.ttls[key] = ttl
        self._expires_at[key] = self.clock + ttl
        return True

    async def incr(self, key: str) -> int:
        value = int(self.store[key]) + 1 if self._live(key) else 1
        self.store[key] = str(value)
        return value

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._live(key))

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._expires_at.pop(key, None)
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def aclose(self) -> None:
        return None


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    """Route every Redis call to an in-memory double."""
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis_client", fake)
    monkeypatch.setattr(stats_aggregator, "_aggregator", None)
    return fake


@pytest.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    """A session for service-level tests.

    SQLite takes the write lock when a transaction begins, so tests that
    also issue HTTP requests must commit before doing so.
    """
    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def admin_user() -> User:
    return await create_user("admin", role=UserRole.ADMIN)


@pytest.fixture
async def regular_user() -> User:
    return await create_user("alice")


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(regular_user: User) -> dict[str, str]:
    return auth_headers(regular_user)
