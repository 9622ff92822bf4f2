"""SQLAlchemy implementation of QuizAttemptRepository."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from study_review.models.quiz_attempt import QuizAttempt


class SqlAlchemyQuizAttemptRepository:
    """Concrete QuizAttemptRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, attempt: QuizAttempt) -> QuizAttempt:
        """Append one answered question."""
        self._session.add(attempt)
        await self._session.flush()
        return attempt

    async def list_for_task(self, task_id: str) -> List[QuizAttempt]:
        result = await self._session.execute(
            select(QuizAttempt)
            .where(QuizAttempt.review_task_id == task_id)
            .order_by(QuizAttempt.created_at.asc())
        )
        return list(result.scalars().all())
