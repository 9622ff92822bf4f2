"""StudyLogRepository protocol: defines study log access contract."""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class StudyLogRepository(Protocol):
    """Repository interface for StudyLog entity access."""

    async def add(self, log: object) -> object:
        """Persist a new study log and return it with ID populated."""
        ...

    async def get(self, study_log_id: str) -> Optional[object]:
        """Look up a study log by ID, or None if it was deleted."""
        ...

    async def delete_many(self, study_log_ids: Sequence[str]) -> int:
        """Delete the given logs and their review tasks. Returns count."""
        ...

    async def list_started_at(self, user_id: str) -> List[datetime]:
        """Return the start timestamps of every log owned by the user."""
        ...
