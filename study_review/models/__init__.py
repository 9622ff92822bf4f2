from .base import Base, TimestampMixin, UTCDateTime
from .quiz_attempt import QuizAttempt
from .reference_book import ReferenceBook
from .review_task import (
    ReviewTask,
    ReviewTaskStatus,
    ReviewThemeResolution,
    ThemeOutcome,
)
from .study_log import StudyLog

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "StudyLog",
    "ReferenceBook",
    "ReviewTask",
    "ReviewTaskStatus",
    "ReviewThemeResolution",
    "ThemeOutcome",
    "QuizAttempt",
]
