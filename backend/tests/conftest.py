import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from klaim.database import Base, get_db
from klaim.main import app
import klaim.models  # noqa: F401

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


async def _setup(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db():
        async with SessionLocal() as session:
            yield session
    app.dependency_overrides[get_db] = override_get_db
    return SessionLocal


@pytest_asyncio.fixture
async def test_db():
    """In-memory database wired into the app; yields a session factory for assertions."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = await _setup(engine)
    yield SessionLocal
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def file_db(tmp_path):
    """File-backed database so concurrent requests get separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'klaim.db'}")
    SessionLocal = await _setup(engine)
    yield SessionLocal
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    return redis
