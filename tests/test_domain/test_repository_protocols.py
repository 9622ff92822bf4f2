"""SQLAlchemy repositories and the quiz generator satisfy their protocols."""

from unittest.mock import MagicMock

from study_review.core.config import Settings
from study_review.domain.ports import QuizGenerator
from study_review.domain.repositories import (
    QuizAttemptRepository,
    ReferenceBookRepository,
    ReviewTaskRepository,
    StudyLogRepository,
    ThemeResolutionRepository,
)
from study_review.infrastructure.repositories import (
    SqlAlchemyQuizAttemptRepository,
    SqlAlchemyReferenceBookRepository,
    SqlAlchemyReviewTaskRepository,
    SqlAlchemyStudyLogRepository,
    SqlAlchemyThemeResolutionRepository,
)
from study_review.services.quiz_service import LiteLLMQuizGenerator


class TestRepositoryProtocols:
    def test_study_log_repository(self):
        assert isinstance(SqlAlchemyStudyLogRepository(MagicMock()), StudyLogRepository)

    def test_review_task_repository(self):
        assert isinstance(
            SqlAlchemyReviewTaskRepository(MagicMock()), ReviewTaskRepository
        )

    def test_quiz_attempt_repository(self):
        assert isinstance(
            SqlAlchemyQuizAttemptRepository(MagicMock()), QuizAttemptRepository
        )

    def test_theme_resolution_repository(self):
        assert isinstance(
            SqlAlchemyThemeResolutionRepository(MagicMock()), ThemeResolutionRepository
        )

    def test_reference_book_repository(self):
        assert isinstance(
            SqlAlchemyReferenceBookRepository(MagicMock()), ReferenceBookRepository
        )

    def test_unrelated_object_is_not_a_repository(self):
        assert not isinstance(object(), ReviewTaskRepository)


class TestQuizGeneratorPort:
    def test_litellm_generator_satisfies_port(self):
        assert isinstance(LiteLLMQuizGenerator(settings=Settings()), QuizGenerator)
