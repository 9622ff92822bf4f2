"""
Study log intake.

Validates and stores logged study sessions and hands logs with a note to
the review scheduler. A new log is scheduled exactly once; edits only
schedule a log that has no review tasks at all.
"""

import logging
import math
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import InvalidStudyInput, PersistenceFailure, StudyLogNotFound
from ..domain.repositories import ReviewTaskRepository, StudyLogRepository
from ..infrastructure.repositories import (
    SqlAlchemyReviewTaskRepository,
    SqlAlchemyStudyLogRepository,
)
from ..models.base import new_id
from ..models.review_task import ReviewTask
from ..models.study_log import StudyLog
from .review_scheduler import PERSISTENCE_ERRORS, OffsetTable, ReviewScheduler
from .streak import Streak, StreakCalculator
from .study_day import StudyDayClock

logger = logging.getLogger(__name__)

# Distinguishes "leave unchanged" from an explicit None on edits
_UNSET: Any = object()


def validate_subject(subject: Any) -> str:
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidStudyInput("subject", "a subject is required")
    return subject.strip()


def validate_minutes(minutes: Any) -> int:
    """Accept a number (or numeric string) of at least one minute."""
    if isinstance(minutes, bool):
        raise InvalidStudyInput("study_minutes", "must be a number")
    if isinstance(minutes, str):
        try:
            minutes = float(minutes.strip())
        except ValueError:
            raise InvalidStudyInput("study_minutes", f"not a number: {minutes!r}") from None
    if not isinstance(minutes, (int, float)) or not math.isfinite(minutes):
        raise InvalidStudyInput("study_minutes", "must be a number")
    if minutes < 1:
        raise InvalidStudyInput("study_minutes", "must be at least 1 minute")
    return int(round(minutes))


def validate_started_at(started_at: Any) -> datetime:
    if not isinstance(started_at, datetime) or started_at.tzinfo is None:
        raise InvalidStudyInput("started_at", "must be a timezone-aware datetime")
    return started_at


def normalize_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    note = note.strip()
    return note or None


class StudyLogService:
    """Creates, edits and merges study logs and keeps their reviews scheduled."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[StudyDayClock] = None,
        log_repository: Optional[StudyLogRepository] = None,
        task_repository: Optional[ReviewTaskRepository] = None,
    ) -> None:
        self._session = session
        self.clock = clock or StudyDayClock.from_settings()
        self._logs = log_repository or SqlAlchemyStudyLogRepository(session)
        self._tasks = task_repository or SqlAlchemyReviewTaskRepository(session)

    def scheduler(self, table: OffsetTable = OffsetTable.SHORT) -> ReviewScheduler:
        return ReviewScheduler.for_table(
            self._session, table, clock=self.clock, task_repository=self._tasks
        )

    async def log_study(
        self,
        user_id: str,
        subject: str,
        minutes: Any,
        started_at: datetime,
        note: Optional[str] = None,
        reference_book_id: Optional[str] = None,
        offsets: OffsetTable = OffsetTable.SHORT,
    ) -> StudyLog:
        """Store a study session and schedule its reviews if it has a note.

        Args:
            offsets: ``short`` for quick notes, ``long`` for authored review cards.

        Raises:
            InvalidStudyInput: Before anything is written.
            PersistenceFailure: If the log or its review tasks cannot be stored.
        """
        log = StudyLog(
            id=new_id(),
            user_id=user_id,
            subject=validate_subject(subject),
            reference_book_id=reference_book_id,
            study_minutes=validate_minutes(minutes),
            started_at=validate_started_at(started_at),
            note=normalize_note(note),
        )
        table = OffsetTable(offsets)

        try:
            await self._logs.add(log)
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            logger.error(f"Failed to store study log for user {user_id}: {e}")
            raise PersistenceFailure("log_study", e) from e

        logger.info(
            f"Logged {log.study_minutes} min of {log.subject} for user {user_id}"
        )
        if log.has_note:
            # A scheduling failure leaves the log unscheduled; the next edit repairs it
            await self.scheduler(table).schedule_initial(
                log.id, user_id, self.clock.study_day(log.started_at)
            )
        return log

    async def _get(self, study_log_id: str) -> StudyLog:
        try:
            log = await self._logs.get(study_log_id)
        except PERSISTENCE_ERRORS as e:
            raise PersistenceFailure("get_study_log", e) from e
        if log is None:
            raise StudyLogNotFound(study_log_id)
        return log

    @staticmethod
    def _apply_changes(
        log: StudyLog,
        subject: Any,
        minutes: Any,
        started_at: Any,
        note: Any,
        reference_book_id: Any,
    ) -> None:
        # Validate everything before touching the row
        changes = {}
        if subject is not _UNSET:
            changes["subject"] = validate_subject(subject)
        if minutes is not _UNSET:
            changes["study_minutes"] = validate_minutes(minutes)
        if started_at is not _UNSET:
            changes["started_at"] = validate_started_at(started_at)
        if note is not _UNSET:
            changes["note"] = normalize_note(note)
        if reference_book_id is not _UNSET:
            changes["reference_book_id"] = reference_book_id
        for name, value in changes.items():
            setattr(log, name, value)

    async def edit_study_log(
        self,
        study_log_id: str,
        subject: Any = _UNSET,
        minutes: Any = _UNSET,
        started_at: Any = _UNSET,
        note: Any = _UNSET,
        reference_book_id: Any = _UNSET,
        offsets: OffsetTable = OffsetTable.SHORT,
    ) -> StudyLog:
        """Update a log; schedule reviews only if it has a note and no tasks yet."""
        return await self.merge_edit(
            study_log_id,
            [],
            subject=subject,
            minutes=minutes,
            started_at=started_at,
            note=note,
            reference_book_id=reference_book_id,
            offsets=offsets,
        )

    async def merge_edit(
        self,
        keep_id: str,
        merged_ids: Sequence[str],
        subject: Any = _UNSET,
        minutes: Any = _UNSET,
        started_at: Any = _UNSET,
        note: Any = _UNSET,
        reference_book_id: Any = _UNSET,
        offsets: OffsetTable = OffsetTable.SHORT,
    ) -> StudyLog:
        """Edit the kept log of a merged group and delete the other rows.

        The other logs' review tasks go with them.
        """
        log = await self._get(keep_id)
        self._apply_changes(log, subject, minutes, started_at, note, reference_book_id)
        others = [i for i in merged_ids if i != keep_id]

        try:
            deleted = await self._logs.delete_many(others) if others else 0
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            logger.error(f"Failed to save study log {keep_id}: {e}")
            raise PersistenceFailure("edit_study_log", e) from e

        if deleted:
            logger.info(f"Merged {deleted} study logs into {keep_id}")
        if log.has_note:
            await self.scheduler(OffsetTable(offsets)).ensure_schedule(
                log.id, log.user_id, self.clock.study_day(log.started_at)
            )
        return log

    async def review_tasks(self, study_log_id: str) -> List[ReviewTask]:
        try:
            return await self._tasks.list_for_log(study_log_id)
        except PERSISTENCE_ERRORS as e:
            raise PersistenceFailure("list_review_tasks", e) from e

    async def streak(self, user_id: str, now: Optional[datetime] = None) -> Streak:
        """Current and longest study streaks for the user."""
        try:
            started = await self._logs.list_started_at(user_id)
        except PERSISTENCE_ERRORS as e:
            raise PersistenceFailure("list_study_days", e) from e
        return StreakCalculator.from_timestamps(started, self.clock, now)
