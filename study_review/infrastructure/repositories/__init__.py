from .sqlalchemy_quiz_attempt_repository import SqlAlchemyQuizAttemptRepository
from .sqlalchemy_reference_book_repository import SqlAlchemyReferenceBookRepository
from .sqlalchemy_review_task_repository import SqlAlchemyReviewTaskRepository
from .sqlalchemy_study_log_repository import SqlAlchemyStudyLogRepository
from .sqlalchemy_theme_resolution_repository import (
    SqlAlchemyThemeResolutionRepository,
)

__all__ = [
    "SqlAlchemyQuizAttemptRepository",
    "SqlAlchemyReferenceBookRepository",
    "SqlAlchemyReviewTaskRepository",
    "SqlAlchemyStudyLogRepository",
    "SqlAlchemyThemeResolutionRepository",
]
