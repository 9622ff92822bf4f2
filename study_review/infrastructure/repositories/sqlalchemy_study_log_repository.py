"""SQLAlchemy implementation of StudyLogRepository."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from study_review.models.study_log import StudyLog

logger = logging.getLogger(__name__)


class SqlAlchemyStudyLogRepository:
    """Concrete StudyLogRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, log: StudyLog) -> StudyLog:
        """Persist a new study log and return it with ID populated."""
        self._session.add(log)
        await self._session.flush()
        return log

    async def get(self, study_log_id: str) -> Optional[StudyLog]:
        """Look up a study log by ID."""
        return await self._session.get(StudyLog, study_log_id)

    async def delete_many(self, study_log_ids: Sequence[str]) -> int:
        """Delete logs one by one so ORM cascades remove their review tasks."""
        if not study_log_ids:
            return 0
        result = await self._session.execute(
            select(StudyLog).where(StudyLog.id.in_(list(study_log_ids)))
        )
        logs = list(result.scalars().unique().all())
        for log in logs:
            await self._session.delete(log)
        await self._session.flush()
        return len(logs)

    async def list_started_at(self, user_id: str) -> List[datetime]:
        """Return the start timestamps of every log owned by the user."""
        result = await self._session.execute(
            select(StudyLog.started_at).where(StudyLog.user_id == user_id)
        )
        return list(result.scalars().all())
