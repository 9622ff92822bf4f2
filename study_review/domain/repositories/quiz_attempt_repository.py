"""QuizAttemptRepository protocol: append-only answer audit trail."""

from typing import List, Protocol, runtime_checkable


@runtime_checkable
class QuizAttemptRepository(Protocol):
    """Repository interface for QuizAttempt rows. Attempts are never mutated."""

    async def add(self, attempt: object) -> object:
        """Append one answered question."""
        ...

    async def list_for_task(self, task_id: str) -> List[object]:
        """Attempts recorded against a task, oldest first."""
        ...
