"""QuizGenerator port -- abstracts the quiz-generation collaborator."""

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class QuizGenerator(Protocol):
    """Generates multiple-choice questions for a topic.

    Potentially slow and fallible; implementations raise
    QuizGenerationFailure and never retry on their own.
    """

    async def generate_quiz(
        self,
        topic: str,
        count: Optional[int] = None,
        difficulty: Optional[str] = None,
    ) -> List[object]:
        """Return questions with ``question``, ``choices``, ``correct_index``."""
        ...
