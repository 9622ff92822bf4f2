"""
Review scheduler.

Turns a study log into pending review tasks from an injected offset table,
and rebuilds a log's future timetable after a failed recall. The rebuild
inserts the new tasks before deleting the superseded ones, inside a single
transaction, retried with exponential backoff.
"""

import enum
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..domain.errors import PersistenceFailure, RescheduleFailure
from ..domain.events import EventBus, ScheduleReset, get_event_bus
from ..domain.repositories import ReviewTaskRepository
from ..infrastructure.repositories import SqlAlchemyReviewTaskRepository
from ..models.base import new_id
from ..models.review_task import ReviewTask, ReviewTaskStatus
from ..utils.logging import log_review_event, log_review_failure
from ..utils.retry import RetryConfig, run_with_retry
from .sm2 import SM2Rating, SM2State, calculate_sm2
from .study_day import StudyDayClock

logger = logging.getLogger(__name__)

PERSISTENCE_ERRORS = (SQLAlchemyError, ConnectionError, TimeoutError)


class OffsetTable(str, enum.Enum):
    """Which configured offset table a caller wants."""

    SHORT = "short"  # quick notes attached to a logged session
    LONG = "long"  # explicitly authored review cards


def offsets_for(table: OffsetTable, settings: Optional[Settings] = None) -> List[int]:
    settings = settings or get_settings()
    if OffsetTable(table) == OffsetTable.LONG:
        return list(settings.long_review_offsets)
    return list(settings.short_review_offsets)


class ReviewScheduler:
    """Creates and supersedes review task sets for study logs.

    The scheduler does not deduplicate: calling ``schedule_initial`` twice
    for the same log creates two task sets. Use ``ensure_schedule`` where a
    log may already have tasks.
    """

    def __init__(
        self,
        session: AsyncSession,
        offsets: Sequence[int],
        clock: Optional[StudyDayClock] = None,
        due_hour: Optional[int] = None,
        task_repository: Optional[ReviewTaskRepository] = None,
        retry_config: Optional[RetryConfig] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        if not offsets:
            raise ValueError("offset table must not be empty")
        if any(offset < 1 for offset in offsets):
            raise ValueError(f"offsets must be positive day counts, got {list(offsets)}")

        settings = get_settings()
        self._session = session
        self.offsets = sorted(set(offsets))
        self.clock = clock or StudyDayClock.from_settings(settings)
        self.due_hour = settings.review_due_hour if due_hour is None else due_hour
        self._tasks = task_repository or SqlAlchemyReviewTaskRepository(session)
        self.retry_config = retry_config or RetryConfig(
            max_attempts=settings.reschedule_max_attempts,
            base_delay=settings.reschedule_base_delay,
        )
        self._event_bus = event_bus or get_event_bus()

        # Reject a due hour that would land in the previous study day
        self.clock.at_hour(date(2000, 1, 1), self.due_hour)

    @classmethod
    def for_table(
        cls,
        session: AsyncSession,
        table: OffsetTable = OffsetTable.SHORT,
        **kwargs,
    ) -> "ReviewScheduler":
        return cls(session, offsets_for(table), **kwargs)

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    def due_dates(self, anchor_day: date) -> List[datetime]:
        """Due instants for every offset, at the configured hour of each study day."""
        return [
            self.clock.at_hour(anchor_day + timedelta(days=offset), self.due_hour)
            for offset in self.offsets
        ]

    def build_tasks(
        self, study_log_id: str, user_id: str, anchor_day: date
    ) -> List[ReviewTask]:
        return [
            self._new_task(study_log_id, user_id, due_at)
            for due_at in self.due_dates(anchor_day)
        ]

    @staticmethod
    def _new_task(study_log_id: str, user_id: str, due_at: datetime) -> ReviewTask:
        # IDs are assigned up front so a rebuild can exclude its own rows
        return ReviewTask(
            id=new_id(),
            user_id=user_id,
            study_log_id=study_log_id,
            due_at=due_at,
            status=ReviewTaskStatus.PENDING,
        )

    # ------------------------------------------------------------------
    # Initial scheduling
    # ------------------------------------------------------------------

    async def schedule_initial(
        self, study_log_id: str, user_id: str, occurred_at_day: date
    ) -> List[ReviewTask]:
        """Insert one pending task per offset, anchored at the log's study day.

        Raises:
            PersistenceFailure: If the insert fails. Nothing is committed.
        """
        tasks = self.build_tasks(study_log_id, user_id, occurred_at_day)
        try:
            await self._tasks.add_many(tasks)
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            log_review_failure(
                "schedule_initial",
                e,
                {"study_log_id": study_log_id, "user_id": user_id},
            )
            raise PersistenceFailure("schedule_initial", e) from e

        logger.info(
            f"Scheduled {len(tasks)} reviews for study log {study_log_id} "
            f"anchored at {occurred_at_day.isoformat()}"
        )
        return tasks

    async def ensure_schedule(
        self, study_log_id: str, user_id: str, occurred_at_day: date
    ) -> List[ReviewTask]:
        """Schedule only if the log has no review tasks at all (edit path)."""
        try:
            existing = await self._tasks.count_for_log(study_log_id)
        except PERSISTENCE_ERRORS as e:
            raise PersistenceFailure("ensure_schedule", e) from e
        if existing:
            logger.debug(f"Study log {study_log_id} already has {existing} review tasks")
            return []
        return await self.schedule_initial(study_log_id, user_id, occurred_at_day)

    # ------------------------------------------------------------------
    # Superseding the schedule
    # ------------------------------------------------------------------

    async def _replace_future(
        self,
        study_log_id: str,
        new_due_dates: Sequence[datetime],
        user_id: str,
        now: datetime,
    ) -> Tuple[List[ReviewTask], int]:
        """Insert the new set, then delete the log's other future pending tasks."""

        async def write_once() -> Tuple[List[ReviewTask], int]:
            tasks = [self._new_task(study_log_id, user_id, d) for d in new_due_dates]
            try:
                await self._tasks.add_many(tasks)
                deleted = await self._tasks.delete_future_pending(
                    study_log_id, now, exclude_ids=[t.id for t in tasks]
                )
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise
            return tasks, deleted

        try:
            return await run_with_retry(self.retry_config, write_once)
        except PERSISTENCE_ERRORS as e:
            log_review_failure(
                "reschedule",
                e,
                {"study_log_id": study_log_id, "user_id": user_id},
            )
            raise RescheduleFailure(study_log_id, e) from e

    async def reschedule_from_now(
        self, study_log_id: str, user_id: str, now: Optional[datetime] = None
    ) -> List[ReviewTask]:
        """Discard the log's future pending tasks and restart the table at tomorrow.

        Past-due and already resolved tasks are left untouched.

        Raises:
            RescheduleFailure: If the rebuild still fails after all retries.
        """
        now = now or self.clock.now()
        anchor = self.clock.today(now) + timedelta(days=1)
        tasks, deleted = await self._replace_future(
            study_log_id, self.due_dates(anchor), user_id, now
        )

        log_review_event(
            "schedule_reset",
            {
                "study_log_id": study_log_id,
                "user_id": user_id,
                "anchor_day": anchor.isoformat(),
                "deleted": deleted,
                "inserted": len(tasks),
            },
        )
        await self._event_bus.publish(
            ScheduleReset(
                study_log_id=study_log_id,
                user_id=user_id,
                deleted_count=deleted,
                inserted_count=len(tasks),
            )
        )
        return tasks

    async def schedule_adaptive(
        self,
        study_log_id: str,
        user_id: str,
        rating: SM2Rating,
        state: SM2State,
        now: Optional[datetime] = None,
    ) -> Tuple[ReviewTask, SM2State]:
        """Supersede the future schedule with one SM-2 computed task.

        The caller owns persisting the returned state and passing it back
        on the next rating.
        """
        now = now or self.clock.now()
        next_state = calculate_sm2(rating, state)
        due_day = self.clock.today(now) + timedelta(days=next_state.interval_days)
        tasks, deleted = await self._replace_future(
            study_log_id, [self.clock.at_hour(due_day, self.due_hour)], user_id, now
        )
        log_review_event(
            "adaptive_schedule",
            {
                "study_log_id": study_log_id,
                "user_id": user_id,
                "rating": SM2Rating(rating).value,
                "interval_days": next_state.interval_days,
                "deleted": deleted,
            },
        )
        return tasks[0], next_state
