import logging
import logging.handlers
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RESCHEDULE_BASE_DELAY"] = "0"

from study_review.core.config import get_settings  # noqa: E402
from study_review.domain.events import reset_event_bus  # noqa: E402
from study_review.models import Base  # noqa: E402
from study_review.services.study_day import StudyDayClock  # noqa: E402

JST = timezone(timedelta(hours=9))


class FixedClock(StudyDayClock):
    """StudyDayClock whose "now" is pinned for deterministic tests."""

    def __init__(self, now: datetime, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fixed_now = now

    def now(self) -> datetime:
        return self.fixed_now


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings from the test environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _fresh_event_bus():
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    # Restore any that were removed (and strip any new ones tests may have added)
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture
async def async_engine():
    """Create an in-memory async SQLite engine with all tables."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine):
    """Create an async session bound to the in-memory engine."""
    factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with factory() as session:
        yield session


@pytest.fixture
def jst_now():
    """2024-01-10 10:00 JST, i.e. inside study day 2024-01-10."""
    return datetime(2024, 1, 10, 10, 0, tzinfo=JST)


@pytest.fixture
def fixed_clock(jst_now):
    return FixedClock(jst_now)


@pytest.fixture
def make_study_log(async_session):
    """Factory inserting a StudyLog row and returning it."""
    from study_review.models import StudyLog
    from study_review.models.base import new_id

    async def _make(
        note: Optional[str] = "A\nB",
        subject: str = "Math",
        started_at: Optional[datetime] = None,
        user_id: str = "user-1",
        reference_book_id: Optional[str] = None,
    ) -> StudyLog:
        log = StudyLog(
            id=new_id(),
            user_id=user_id,
            subject=subject,
            reference_book_id=reference_book_id,
            study_minutes=30,
            started_at=started_at or datetime(2024, 1, 1, 20, 0, tzinfo=JST),
            note=note,
        )
        async_session.add(log)
        await async_session.commit()
        return log

    return _make


@pytest.fixture
def make_review_task(async_session):
    """Factory inserting a ReviewTask row for a study log."""
    from study_review.models import ReviewTask, ReviewTaskStatus
    from study_review.models.base import new_id

    async def _make(log, due_at: datetime, status=ReviewTaskStatus.PENDING):
        task = ReviewTask(
            id=new_id(),
            user_id=log.user_id,
            study_log_id=log.id,
            due_at=due_at,
            status=status,
        )
        async_session.add(task)
        await async_session.commit()
        return task

    return _make
