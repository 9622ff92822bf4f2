"""Tests for SQLAlchemy repository implementations.

Uses an in-memory SQLite database to verify that the concrete repositories
correctly implement the domain protocols and perform CRUD operations.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, StatementError

from study_review.infrastructure.repositories import (
    SqlAlchemyQuizAttemptRepository,
    SqlAlchemyReferenceBookRepository,
    SqlAlchemyReviewTaskRepository,
    SqlAlchemyStudyLogRepository,
    SqlAlchemyThemeResolutionRepository,
)
from study_review.models import (
    QuizAttempt,
    ReferenceBook,
    ReviewTask,
    ReviewTaskStatus,
    ReviewThemeResolution,
    StudyLog,
    ThemeOutcome,
)
from study_review.models.base import new_id

JST = timezone(timedelta(hours=9))
NOW = datetime(2024, 1, 10, 10, 0, tzinfo=JST)


class TestUTCDateTime:
    @pytest.mark.asyncio
    async def test_round_trip_is_aware_utc(self, async_session, make_study_log):
        log = await make_study_log(started_at=datetime(2024, 1, 2, 2, 30, tzinfo=JST))
        started = await SqlAlchemyStudyLogRepository(async_session).list_started_at(
            log.user_id
        )
        assert started == [datetime(2024, 1, 1, 17, 30, tzinfo=timezone.utc)]
        assert started[0].tzinfo is not None

    @pytest.mark.asyncio
    async def test_naive_datetime_rejected(self, async_session):
        async_session.add(
            StudyLog(
                id=new_id(),
                user_id="user-1",
                subject="Math",
                study_minutes=10,
                started_at=datetime(2024, 1, 1, 12, 0),
            )
        )
        with pytest.raises(StatementError):
            await async_session.flush()
        await async_session.rollback()


class TestStudyLogRepository:
    @pytest.mark.asyncio
    async def test_add_and_get(self, async_session):
        repo = SqlAlchemyStudyLogRepository(async_session)
        log = StudyLog(
            id=new_id(),
            user_id="user-1",
            subject="Chemistry",
            study_minutes=45,
            started_at=NOW,
            note="Moles",
        )
        await repo.add(log)
        await async_session.commit()

        fetched = await repo.get(log.id)
        assert fetched is not None
        assert fetched.subject == "Chemistry"
        assert fetched.has_note

    @pytest.mark.asyncio
    async def test_get_missing(self, async_session):
        assert await SqlAlchemyStudyLogRepository(async_session).get("nope") is None

    @pytest.mark.asyncio
    async def test_delete_many_cascades_tasks(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        await make_review_task(log, NOW)
        repo = SqlAlchemyStudyLogRepository(async_session)

        assert await repo.delete_many([log.id, "unknown"]) == 1
        await async_session.commit()

        tasks = SqlAlchemyReviewTaskRepository(async_session)
        assert await tasks.count_for_log(log.id) == 0

    @pytest.mark.asyncio
    async def test_delete_many_empty(self, async_session):
        assert await SqlAlchemyStudyLogRepository(async_session).delete_many([]) == 0


class TestReviewTaskRepository:
    @pytest.mark.asyncio
    async def test_list_due_filters_and_orders(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        later = await make_review_task(log, NOW - timedelta(hours=1))
        earlier = await make_review_task(log, NOW - timedelta(days=2))
        await make_review_task(log, NOW + timedelta(minutes=1))
        await make_review_task(log, NOW - timedelta(days=1), ReviewTaskStatus.COMPLETED)
        exact = await make_review_task(log, NOW)

        due = await SqlAlchemyReviewTaskRepository(async_session).list_due("user-1", NOW)

        assert [t.id for t in due] == [earlier.id, later.id, exact.id]
        assert all(t.study_log is not None for t in due)

    @pytest.mark.asyncio
    async def test_delete_future_pending(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        past = await make_review_task(log, NOW - timedelta(days=1))
        keep = await make_review_task(log, NOW + timedelta(days=3))
        await make_review_task(log, NOW + timedelta(days=1))
        await make_review_task(log, NOW + timedelta(days=2), ReviewTaskStatus.SKIPPED)
        repo = SqlAlchemyReviewTaskRepository(async_session)

        deleted = await repo.delete_future_pending(log.id, NOW, exclude_ids=[keep.id])
        await async_session.commit()

        assert deleted == 1
        remaining = {t.id for t in await repo.list_for_log(log.id)}
        assert past.id in remaining
        assert keep.id in remaining
        assert len(remaining) == 3

    @pytest.mark.asyncio
    async def test_set_status_only_from_pending(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        task = await make_review_task(log, NOW)
        repo = SqlAlchemyReviewTaskRepository(async_session)

        assert await repo.set_status(task.id, ReviewTaskStatus.COMPLETED) is True
        assert await repo.set_status(task.id, ReviewTaskStatus.SKIPPED) is False
        await async_session.commit()

        assert (await repo.get(task.id)).status == ReviewTaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_add_many_and_count(self, async_session, make_study_log):
        log = await make_study_log()
        repo = SqlAlchemyReviewTaskRepository(async_session)
        tasks = [
            ReviewTask(id=new_id(), user_id="user-1", study_log_id=log.id, due_at=NOW)
            for _ in range(3)
        ]
        await repo.add_many(tasks)
        await async_session.commit()

        assert await repo.count_for_log(log.id) == 3
        assert all(t.status == ReviewTaskStatus.PENDING for t in tasks)


class TestThemeResolutionRepository:
    @pytest.mark.asyncio
    async def test_add_and_list(self, async_session, make_study_log, make_review_task):
        log = await make_study_log()
        task = await make_review_task(log, NOW)
        repo = SqlAlchemyThemeResolutionRepository(async_session)

        await repo.add(
            ReviewThemeResolution(
                review_task_id=task.id,
                theme_index=1,
                theme="B",
                outcome=ThemeOutcome.SKIPPED,
            )
        )
        await repo.add(
            ReviewThemeResolution(
                review_task_id=task.id,
                theme_index=0,
                theme="A",
                outcome=ThemeOutcome.COMPLETED,
                had_failure=True,
            )
        )
        await async_session.commit()

        rows = await repo.list_for_tasks([task.id])
        assert [(r.theme_index, r.outcome, r.had_failure) for r in rows] == [
            (0, ThemeOutcome.COMPLETED, True),
            (1, ThemeOutcome.SKIPPED, False),
        ]
        assert await repo.list_for_tasks([]) == []

    @pytest.mark.asyncio
    async def test_one_resolution_per_theme(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        task = await make_review_task(log, NOW)
        task_id = task.id
        repo = SqlAlchemyThemeResolutionRepository(async_session)
        # Same theme text at a different position still counts as the same theme
        for index in range(2):
            async_session.add(
                ReviewThemeResolution(
                    review_task_id=task_id,
                    theme_index=index,
                    theme="A",
                    outcome=ThemeOutcome.COMPLETED,
                )
            )
        with pytest.raises(IntegrityError):
            await async_session.flush()
        await async_session.rollback()
        assert await repo.list_for_tasks([task_id]) == []

    @pytest.mark.asyncio
    async def test_get_for_theme_matches_text(
        self, async_session, make_study_log, make_review_task
    ):
        log = await make_study_log()
        task = await make_review_task(log, NOW)
        repo = SqlAlchemyThemeResolutionRepository(async_session)
        await repo.add(
            ReviewThemeResolution(
                review_task_id=task.id,
                theme_index=0,
                theme="A",
                outcome=ThemeOutcome.SKIPPED,
            )
        )
        await async_session.commit()

        found = await repo.get_for_theme(task.id, "A")
        assert found is not None
        assert found.outcome == ThemeOutcome.SKIPPED
        assert await repo.get_for_theme(task.id, "B") is None


class TestQuizAttemptRepository:
    @pytest.mark.asyncio
    async def test_add_and_list(self, async_session, make_study_log, make_review_task):
        log = await make_study_log()
        task = await make_review_task(log, NOW)
        repo = SqlAlchemyQuizAttemptRepository(async_session)

        await repo.add(
            QuizAttempt(
                user_id="user-1",
                review_task_id=task.id,
                question="2+2?",
                choices=["3", "4", "5", "6"],
                correct_index=1,
                selected_index=-1,
                is_correct=False,
            )
        )
        await async_session.commit()

        (attempt,) = await repo.list_for_task(task.id)
        assert attempt.choices == ["3", "4", "5", "6"]
        assert attempt.selected_index == -1
        assert attempt.id


class TestReferenceBookRepository:
    @pytest.mark.asyncio
    async def test_list_by_ids_includes_deleted(self, async_session):
        live = ReferenceBook(id=new_id(), user_id="user-1", name="Live")
        gone = ReferenceBook(id=new_id(), user_id="user-1", name="Gone", deleted_at=NOW)
        async_session.add_all([live, gone])
        await async_session.commit()

        repo = SqlAlchemyReferenceBookRepository(async_session)
        books = await repo.list_by_ids([live.id, gone.id])
        assert {b.name for b in books} == {"Live", "Gone"}
        assert {b.name for b in books if b.is_deleted} == {"Gone"}
        assert await repo.list_by_ids([]) == []
