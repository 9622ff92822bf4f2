"""Tests for database session management."""

import pytest
from sqlalchemy import text

from study_review.core import database


@pytest.fixture
async def memory_database():
    await database.init_database("sqlite+aiosqlite:///:memory:")
    yield
    await database.close_database()


class TestDatabase:
    @pytest.mark.asyncio
    async def test_health_check(self, memory_database):
        assert await database.health_check() is True

    @pytest.mark.asyncio
    async def test_tables_created(self, memory_database):
        async with database.get_db_session() as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type='table'")
            )
            tables = {row[0] for row in result}
        assert {
            "study_logs",
            "review_tasks",
            "quiz_attempts",
            "reference_books",
            "review_theme_resolutions",
        } <= tables

    @pytest.mark.asyncio
    async def test_session_reraises_errors(self, memory_database):
        with pytest.raises(RuntimeError):
            async with database.get_db_session():
                raise RuntimeError("boom")

    @pytest.mark.asyncio
    async def test_close_resets_state(self):
        await database.init_database("sqlite+aiosqlite:///:memory:")
        await database.close_database()
        assert database._engine is None
        assert database._session_factory is None
