"""Tests for the Alembic schema and startup database check."""
import importlib.util
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from recall.database import Base, engine, init_db
from recall.services.scheduler_service import SchedulerService, ItemContent

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
VERSIONS_DIR = Path(__file__).resolve().parents[1] / "migrations" / "versions"


def load_revision(filename: str):
    spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), VERSIONS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_revision(connection, step: str) -> None:
    revision = load_revision("001_review_scheduler.py")
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        getattr(revision, step)()


def table_names(connection) -> set[str]:
    return set(inspect(connection).get_table_names())


@pytest_asyncio.fixture
async def migrated_engine(tmp_path):
    migrated = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'migrated.db'}")
    async with migrated.begin() as conn:
        await conn.run_sync(run_revision, "upgrade")
    yield migrated
    await migrated.dispose()


class TestReviewSchedulerMigration:
    """Tests for revision 001."""

    @pytest.mark.asyncio
    async def test_upgrade_matches_models(self, migrated_engine):
        async with migrated_engine.connect() as conn:
            tables = await conn.run_sync(table_names)
            columns = await conn.run_sync(
                lambda sync_conn: {
                    table: {column["name"] for column in inspect(sync_conn).get_columns(table)}
                    for table in ("recall_review_items", "recall_review_events")
                }
            )

        assert {"recall_review_items", "recall_review_events"} <= tables
        for table in ("recall_review_items", "recall_review_events"):
            assert columns[table] == set(Base.metadata.tables[table].columns.keys())

    @pytest.mark.asyncio
    async def test_review_on_migrated_schema(self, migrated_engine, test_settings):
        maker = async_sessionmaker(migrated_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
        async with maker() as session:
            scheduler = SchedulerService(session, settings=test_settings)
            await scheduler.initialize_item(
                "learner-1", "card-1", ItemContent(prompt="Capital of Peru?", answer="Lima"), now=NOW
            )
            result = await scheduler.submit_review("learner-1", "card-1", 5, now=NOW)

        assert result.item.revision == 1
        assert result.item.interval_days == 1

    @pytest.mark.asyncio
    async def test_downgrade_drops_tables(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            await conn.run_sync(run_revision, "downgrade")
            tables = await conn.run_sync(table_names)

        assert "recall_review_items" not in tables
        assert "recall_review_events" not in tables


@pytest.mark.asyncio
async def test_init_db_does_not_create_tables():
    await init_db()

    async with engine.connect() as conn:
        tables = await conn.run_sync(table_names)

    assert "recall_review_items" not in tables
