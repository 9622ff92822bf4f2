from .quiz_attempt_repository import QuizAttemptRepository
from .reference_book_repository import ReferenceBookRepository
from .review_task_repository import ReviewTaskRepository
from .study_log_repository import StudyLogRepository
from .theme_resolution_repository import ThemeResolutionRepository

__all__ = [
    "QuizAttemptRepository",
    "ReferenceBookRepository",
    "ReviewTaskRepository",
    "StudyLogRepository",
    "ThemeResolutionRepository",
]
