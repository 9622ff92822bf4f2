"""SQLAlchemy implementation of ThemeResolutionRepository."""

from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from study_review.models.review_task import ReviewThemeResolution


class SqlAlchemyThemeResolutionRepository:
    """Concrete ThemeResolutionRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, resolution: ReviewThemeResolution) -> ReviewThemeResolution:
        self._session.add(resolution)
        await self._session.flush()
        return resolution

    async def list_for_tasks(
        self, task_ids: Sequence[str]
    ) -> List[ReviewThemeResolution]:
        if not task_ids:
            return []
        result = await self._session.execute(
            select(ReviewThemeResolution)
            .where(ReviewThemeResolution.review_task_id.in_(list(task_ids)))
            .order_by(ReviewThemeResolution.theme_index.asc())
        )
        return list(result.scalars().all())

    async def get_for_theme(
        self, task_id: str, theme: str
    ) -> Optional[ReviewThemeResolution]:
        result = await self._session.execute(
            select(ReviewThemeResolution)
            .where(
                ReviewThemeResolution.review_task_id == task_id,
                ReviewThemeResolution.theme == theme,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
