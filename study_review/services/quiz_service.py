"""
Quiz generation using LiteLLM.

Turns a theme into a handful of four-choice questions. The model is asked
for a JSON object; anything that does not parse into usable questions is
reported as a QuizGenerationFailure. Nothing here retries.
"""

import enum
import json
import logging
import random
from typing import Any, List, Optional

import litellm
from pydantic import BaseModel, ValidationError, field_validator

from ..core.config import Settings, get_settings
from ..domain.errors import InvalidStudyInput, QuizGenerationFailure

logger = logging.getLogger(__name__)

DONT_KNOW_INDEX = -1


class QuizDifficulty(str, enum.Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


DIFFICULTY_GUIDANCE = {
    QuizDifficulty.EASY: "easy (basic facts and definitions)",
    QuizDifficulty.NORMAL: "normal (standard exam level)",
    QuizDifficulty.HARD: "hard (applied questions, plausible distractors)",
}


class QuizQuestion(BaseModel):
    """A validated multiple-choice question with its correct choice index."""

    question: str
    choices: List[str]
    correct_index: int
    explanation: Optional[str] = None

    def is_correct(self, selected_index: int) -> bool:
        """The "don't know" answer (-1) is never correct."""
        return selected_index != DONT_KNOW_INDEX and selected_index == self.correct_index


class _RawQuestion(BaseModel):
    question: str = ""
    choices: List[str] = []
    correct_index: int = 0
    explanation: Optional[str] = None

    @field_validator("question", "explanation", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip()

    @field_validator("choices", mode="before")
    @classmethod
    def _choices_as_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(choice) for choice in value]
        return value


def normalize_difficulty(value: Any) -> QuizDifficulty:
    """Map anything that is not easy/normal/hard to normal."""
    try:
        return QuizDifficulty(value)
    except ValueError:
        return QuizDifficulty.NORMAL


def clamp_count(count: Any, default: int, maximum: int) -> int:
    """Clamp the requested question count to [1, maximum]; non-numbers get the default."""
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        return default
    if count != count or count in (float("inf"), float("-inf")):
        return default
    return int(min(max(count, 1), maximum))


def shuffle_choices(
    question: QuizQuestion, rng: Optional[random.Random] = None
) -> QuizQuestion:
    """Shuffle choices and move ``correct_index`` with the correct choice."""
    rng = rng or random.Random()
    order = list(range(len(question.choices)))
    rng.shuffle(order)
    return QuizQuestion(
        question=question.question,
        choices=[question.choices[i] for i in order],
        correct_index=order.index(question.correct_index),
        explanation=question.explanation,
    )


def parse_quiz_payload(
    content: str,
    choice_count: int = 4,
    rng: Optional[random.Random] = None,
) -> List[QuizQuestion]:
    """Parse ``{"questions": [...]}`` into shuffled, validated questions.

    Questions without exactly *choice_count* choices, with an empty text,
    or with an out-of-range correct index are dropped.

    Raises:
        QuizGenerationFailure: If *content* is not a JSON object.
    """
    try:
        payload = json.loads(content)
    except (TypeError, ValueError) as e:
        raise QuizGenerationFailure(f"invalid json from quiz model: {e}") from e
    if not isinstance(payload, dict):
        raise QuizGenerationFailure("quiz model did not return a JSON object")

    raw_questions = payload.get("questions") or []
    if not isinstance(raw_questions, list):
        raise QuizGenerationFailure("'questions' is not a list")

    questions: List[QuizQuestion] = []
    for item in raw_questions:
        if not isinstance(item, dict):
            continue
        try:
            raw = _RawQuestion.model_validate(item)
        except ValidationError:
            logger.debug(f"Dropping malformed quiz question: {item!r}")
            continue
        if len(raw.choices) != choice_count or not raw.question:
            continue
        if not 0 <= raw.correct_index < choice_count:
            continue
        question = QuizQuestion(
            question=raw.question,
            choices=raw.choices,
            correct_index=raw.correct_index,
            explanation=raw.explanation or None,
        )
        questions.append(shuffle_choices(question, rng))
    return questions


class LiteLLMQuizGenerator:
    """QuizGenerator backed by any LiteLLM-supported chat model."""

    def __init__(
        self,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.model = model or self.settings.quiz_model
        self._rng = rng or random.Random()

    def _build_messages(
        self, topic: str, count: int, difficulty: QuizDifficulty
    ) -> List[dict]:
        choice_count = self.settings.quiz_choice_count
        guidance = DIFFICULTY_GUIDANCE[difficulty]
        system_prompt = (
            "You write review quizzes for students. "
            f"Create multiple-choice questions with exactly {choice_count} choices "
            f"about the study content. Difficulty: {guidance}. "
            "Respond with JSON only, in the form "
            '{"questions":[{"question":"...","choices":["..."],'
            '"correct_index":0,"explanation":"..."}]}. '
            f"correct_index is an integer from 0 to {choice_count - 1}; "
            "keep explanations short. Vary the angle and wording on every "
            "request so repeated reviews do not see the same question."
        )
        user_prompt = (
            f"Study content:\n{topic}\n\nNumber of questions: {count}\n"
            f"Difficulty: {guidance}"
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    async def generate_quiz(
        self,
        topic: str,
        count: Optional[int] = None,
        difficulty: Optional[str] = None,
    ) -> List[QuizQuestion]:
        """Generate questions for *topic*.

        Raises:
            InvalidStudyInput: If *topic* is blank.
            QuizGenerationFailure: If the model call fails or returns nothing usable.
        """
        if not topic or not topic.strip():
            raise InvalidStudyInput("topic", "a topic is required to generate a quiz")

        question_count = clamp_count(
            count, self.settings.quiz_default_count, self.settings.quiz_max_count
        )
        level = normalize_difficulty(difficulty)
        messages = self._build_messages(topic.strip(), question_count, level)

        logger.info(
            f"Requesting {question_count} {level.value} questions from {self.model}"
        )
        completion_kwargs = {}
        if self.settings.openai_api_key:
            completion_kwargs["api_key"] = self.settings.openai_api_key
        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                **completion_kwargs,
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"Quiz generation call failed: {e}", exc_info=True)
            raise QuizGenerationFailure(f"quiz generation failed: {e}") from e

        if not content or not content.strip():
            raise QuizGenerationFailure("empty response from quiz model")

        questions = parse_quiz_payload(
            content.strip(), self.settings.quiz_choice_count, self._rng
        )
        if not questions:
            raise QuizGenerationFailure("quiz model returned no usable questions")
        return questions
