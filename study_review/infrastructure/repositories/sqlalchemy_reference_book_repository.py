"""SQLAlchemy implementation of ReferenceBookRepository."""

from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from study_review.models.reference_book import ReferenceBook


class SqlAlchemyReferenceBookRepository:
    """Concrete ReferenceBookRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_ids(self, book_ids: Sequence[str]) -> List[ReferenceBook]:
        """Return the books with the given IDs, including soft-deleted ones."""
        if not book_ids:
            return []
        result = await self._session.execute(
            select(ReferenceBook).where(ReferenceBook.id.in_(list(book_ids)))
        )
        return list(result.scalars().all())
