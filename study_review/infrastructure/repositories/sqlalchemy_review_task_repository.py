"""SQLAlchemy implementation of ReviewTaskRepository."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from study_review.models.review_task import ReviewTask, ReviewTaskStatus

logger = logging.getLogger(__name__)


class SqlAlchemyReviewTaskRepository:
    """Concrete ReviewTaskRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, tasks: Sequence[ReviewTask]) -> List[ReviewTask]:
        """Persist new tasks and return them with IDs populated."""
        self._session.add_all(list(tasks))
        await self._session.flush()
        return list(tasks)

    async def get(self, task_id: str) -> Optional[ReviewTask]:
        """Look up a task by ID."""
        return await self._session.get(ReviewTask, task_id, populate_existing=True)

    async def count_for_log(self, study_log_id: str) -> int:
        """Count tasks of any status attached to a study log."""
        result = await self._session.execute(
            select(func.count(ReviewTask.id)).where(
                ReviewTask.study_log_id == study_log_id
            )
        )
        return result.scalar() or 0

    async def list_for_log(self, study_log_id: str) -> List[ReviewTask]:
        """All tasks of a study log, ordered by due date."""
        result = await self._session.execute(
            select(ReviewTask)
            .where(ReviewTask.study_log_id == study_log_id)
            .order_by(ReviewTask.due_at.asc())
        )
        return list(result.scalars().all())

    async def list_due(self, user_id: str, now: datetime) -> List[ReviewTask]:
        """Pending tasks due at or before *now*, oldest first, with study logs loaded."""
        result = await self._session.execute(
            select(ReviewTask)
            .options(selectinload(ReviewTask.study_log))
            .where(
                ReviewTask.user_id == user_id,
                ReviewTask.status == ReviewTaskStatus.PENDING,
                ReviewTask.due_at <= now,
            )
            .order_by(ReviewTask.due_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def delete_future_pending(
        self,
        study_log_id: str,
        after: datetime,
        exclude_ids: Sequence[str] = (),
    ) -> int:
        """Delete pending tasks of a log due strictly after *after*. Returns count."""
        stmt = delete(ReviewTask).where(
            ReviewTask.study_log_id == study_log_id,
            ReviewTask.status == ReviewTaskStatus.PENDING,
            ReviewTask.due_at > after,
        )
        if exclude_ids:
            stmt = stmt.where(ReviewTask.id.not_in(list(exclude_ids)))
        result = await self._session.execute(
            stmt.execution_options(synchronize_session="fetch")
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def set_status(self, task_id: str, status: ReviewTaskStatus) -> bool:
        """Move a pending task to *status*. Returns False if it was not pending.

        Last writer wins across devices: the pending guard only stops
        re-resolving a task this session already saw resolved.
        """
        result = await self._session.execute(
            update(ReviewTask)
            .where(
                ReviewTask.id == task_id,
                ReviewTask.status == ReviewTaskStatus.PENDING,
            )
            .values(status=status)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]
