import os

# Settings are cached on first import, so the environment must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REVIEW_RATE_LIMIT", "1000/minute")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from recall.config import Settings
from recall.database import Base, get_db
from recall.main import app
from recall.services.scheduler_service import SchedulerService, ItemContent


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """SQLite on a temporary file so separate sessions get separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'recall_test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def test_session(session_maker):
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def test_settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        review_max_attempts=3,
        retention_window_days=30,
    )


@pytest.fixture
def scheduler(test_session, test_settings):
    return SchedulerService(test_session, settings=test_settings)


@pytest.fixture
def make_content():
    def _make(prompt: str = "What is the SM-2 minimum ease factor?", **kwargs) -> ItemContent:
        return ItemContent(
            prompt=prompt,
            answer=kwargs.pop("answer", "1.3"),
            hint=kwargs.pop("hint", None),
            tags=frozenset(kwargs.pop("tags", ())),
        )
    return _make


@pytest_asyncio.fixture
async def client(session_maker):
    """Create test client with database override."""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
