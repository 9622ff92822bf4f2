"""ThemeResolutionRepository protocol: per-theme progress persistence."""

from typing import List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ThemeResolutionRepository(Protocol):
    """Repository interface for ReviewThemeResolution rows."""

    async def add(self, resolution: object) -> object:
        """Record the outcome of one theme of a task."""
        ...

    async def list_for_tasks(self, task_ids: Sequence[str]) -> List[object]:
        """All recorded outcomes for the given tasks."""
        ...

    async def get_for_theme(self, task_id: str, theme: str) -> Optional[object]:
        """The recorded outcome of one theme of a task, if any."""
        ...
