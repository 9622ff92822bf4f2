"""ReviewTaskRepository protocol: defines review task access contract."""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ReviewTaskRepository(Protocol):
    """Repository interface for ReviewTask entity access."""

    async def add_many(self, tasks: Sequence[object]) -> List[object]:
        """Persist new tasks and return them with IDs populated."""
        ...

    async def get(self, task_id: str) -> Optional[object]:
        """Look up a task by ID."""
        ...

    async def count_for_log(self, study_log_id: str) -> int:
        """Count tasks of any status attached to a study log."""
        ...

    async def list_for_log(self, study_log_id: str) -> List[object]:
        """All tasks of a study log, ordered by due date."""
        ...

    async def list_due(self, user_id: str, now: datetime) -> List[object]:
        """Pending tasks due at or before *now*, oldest first, with study logs loaded."""
        ...

    async def delete_future_pending(
        self,
        study_log_id: str,
        after: datetime,
        exclude_ids: Sequence[str] = (),
    ) -> int:
        """Delete pending tasks of a log due strictly after *after*. Returns count."""
        ...

    async def set_status(self, task_id: str, status: object) -> bool:
        """Move a pending task to *status*. Returns False if it was not pending."""
        ...
