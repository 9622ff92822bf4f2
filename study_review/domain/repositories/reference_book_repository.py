"""ReferenceBookRepository protocol: resolves display titles for groups."""

from typing import List, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ReferenceBookRepository(Protocol):
    """Repository interface for ReferenceBook lookups."""

    async def list_by_ids(self, book_ids: Sequence[str]) -> List[object]:
        """Return the books with the given IDs, including soft-deleted ones."""
        ...
