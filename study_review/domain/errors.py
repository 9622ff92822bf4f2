"""
Typed domain errors for the review engine.

Callers distinguish input errors, collaborator failures and persistence
failures and map each to an appropriate user-facing message. None of these
are swallowed inside the engine.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for all domain-specific errors."""


# ---------------------------------------------------------------------------
# Input errors (rejected before any write)
# ---------------------------------------------------------------------------


class InvalidStudyInput(DomainError):
    """A study log or quiz request failed validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class QuizGenerationFailure(DomainError):
    """Quiz generation failed or returned unparseable content."""


# ---------------------------------------------------------------------------
# Persistence failures
# ---------------------------------------------------------------------------


class PersistenceFailure(DomainError):
    """An insert, update or delete against the backing store failed."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Persistence failure during {operation}{detail}")


class RescheduleFailure(PersistenceFailure):
    """Rebuilding a study log's future timetable failed after all retries.

    The log may be left without future pending tasks; this must be surfaced.
    """

    def __init__(self, study_log_id: str, cause: Optional[BaseException] = None) -> None:
        self.study_log_id = study_log_id
        super().__init__(f"reschedule of study log {study_log_id}", cause)


# ---------------------------------------------------------------------------
# Lookup / state errors
# ---------------------------------------------------------------------------


class StudyLogNotFound(DomainError):
    def __init__(self, study_log_id: str) -> None:
        self.study_log_id = study_log_id
        super().__init__(f"Study log {study_log_id} not found")


class ReviewTaskNotFound(DomainError):
    """Task is not part of the current review session."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Review task {task_id} not found")


class ThemeNotFound(DomainError):
    def __init__(self, task_id: str, theme_index: int) -> None:
        self.task_id = task_id
        self.theme_index = theme_index
        super().__init__(f"Theme {theme_index} not visible on task {task_id}")


class TaskAlreadyResolved(DomainError):
    """Task already left the pending state."""

    def __init__(self, task_id: str, status: str) -> None:
        self.task_id = task_id
        self.status = status
        super().__init__(f"Review task {task_id} is already {status}")
