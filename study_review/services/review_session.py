"""
Review session: the review task state machine for one learner.

A session loads the learner's due tasks, expands each task's note into
themes and tracks which themes are still visible. Themes are resolved by
flashcard self-grading or by answering generated quiz questions; a task is
finalized once its visible-theme set is empty. Any theme resolved with a
wrong answer first rebuilds the study log's future timetable.

Per-theme progress is persisted as ReviewThemeResolution rows, so a reload
reconstructs the same visible set. All in-memory state lives on the
session object; ORM rows are snapshotted into plain dataclasses on load.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import (
    InvalidStudyInput,
    PersistenceFailure,
    ReviewTaskNotFound,
    TaskAlreadyResolved,
    ThemeNotFound,
)
from ..domain.events import (
    EventBus,
    ReviewTaskCompleted,
    ReviewTaskSkipped,
    get_event_bus,
)
from ..domain.ports import QuizGenerator
from ..domain.repositories import (
    QuizAttemptRepository,
    ReferenceBookRepository,
    ReviewTaskRepository,
    ThemeResolutionRepository,
)
from ..infrastructure.repositories import (
    SqlAlchemyQuizAttemptRepository,
    SqlAlchemyReferenceBookRepository,
    SqlAlchemyReviewTaskRepository,
    SqlAlchemyThemeResolutionRepository,
)
from ..models.base import new_id
from ..models.quiz_attempt import QuizAttempt
from ..models.review_task import ReviewTaskStatus, ReviewThemeResolution, ThemeOutcome
from ..utils.logging import log_review_event, log_review_failure
from .quiz_service import DONT_KNOW_INDEX, LiteLLMQuizGenerator, QuizQuestion
from .review_scheduler import PERSISTENCE_ERRORS, OffsetTable, ReviewScheduler
from .sm2 import SM2Rating, SM2State, worst_rating
from .study_day import StudyDayClock, format_day_key
from .themes import Theme, ThemeMode, build_themes

logger = logging.getLogger(__name__)


class QuizStatus(str, enum.Enum):
    NOT_GENERATED = "not_generated"
    LOADING = "loading"
    READY = "ready"


@dataclass
class ThemeState:
    """Progress on one theme of a task during this session."""

    theme: Theme
    quiz_status: QuizStatus = QuizStatus.NOT_GENERATED
    questions: List[QuizQuestion] = field(default_factory=list)
    answers: Dict[int, int] = field(default_factory=dict)
    failed: bool = False
    ratings: List[SM2Rating] = field(default_factory=list)
    outcome: Optional[ThemeOutcome] = None

    @property
    def is_visible(self) -> bool:
        return self.outcome is None

    @property
    def all_answered(self) -> bool:
        return bool(self.questions) and len(self.answers) == len(self.questions)

    def reset_quiz(self) -> None:
        self.quiz_status = QuizStatus.NOT_GENERATED
        self.questions = []
        self.answers = {}


@dataclass
class DueTask:
    """Snapshot of a due review task joined with its study log."""

    id: str
    study_log_id: str
    user_id: str
    due_at: datetime
    subject: str
    reference_book_id: Optional[str]
    started_at: datetime
    study_day: date
    note: str
    themes: Dict[int, ThemeState] = field(default_factory=dict)
    status: ReviewTaskStatus = ReviewTaskStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == ReviewTaskStatus.PENDING

    @property
    def visible_themes(self) -> List[Theme]:
        return [s.theme for s in self.themes.values() if s.is_visible]

    @property
    def group_key(self) -> str:
        if self.reference_book_id:
            return f"book:{self.reference_book_id}"
        return f"subject:{self.subject}"

    @property
    def bucket_key(self) -> str:
        return f"{format_day_key(self.study_day)}|{self.group_key}"


@dataclass
class TaskGroup:
    """Due tasks sharing a reference book (or a subject when there is none)."""

    key: str
    title: str
    image_url: Optional[str] = None
    tasks: List[DueTask] = field(default_factory=list)
    buckets: Dict[str, List[DueTask]] = field(default_factory=dict)

    @property
    def theme_count(self) -> int:
        return sum(len(t.visible_themes) for t in self.tasks if t.is_pending)

    @property
    def is_resolved(self) -> bool:
        return all(not t.is_pending for t in self.tasks)


@dataclass(frozen=True)
class _BookInfo:
    name: str
    image_url: Optional[str]
    is_deleted: bool


class ReviewSession:
    """Due-task state machine for one learner's viewing session.

    Call ``close()`` when the view goes away: in-flight writes still
    finish, but no theme or task is resolved against a closed session.
    """

    def __init__(
        self,
        session: AsyncSession,
        user_id: str,
        scheduler: Optional[ReviewScheduler] = None,
        quiz_generator: Optional[QuizGenerator] = None,
        clock: Optional[StudyDayClock] = None,
        task_repository: Optional[ReviewTaskRepository] = None,
        attempt_repository: Optional[QuizAttemptRepository] = None,
        resolution_repository: Optional[ThemeResolutionRepository] = None,
        book_repository: Optional[ReferenceBookRepository] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._session = session
        self.user_id = user_id
        self.clock = clock or StudyDayClock.from_settings()
        self._task_repo = task_repository or SqlAlchemyReviewTaskRepository(session)
        self._attempts = attempt_repository or SqlAlchemyQuizAttemptRepository(session)
        self._resolutions = resolution_repository or SqlAlchemyThemeResolutionRepository(
            session
        )
        self._books = book_repository or SqlAlchemyReferenceBookRepository(session)
        self.scheduler = scheduler or ReviewScheduler.for_table(
            session,
            OffsetTable.SHORT,
            clock=self.clock,
            task_repository=self._task_repo,
        )
        self.quiz_generator = quiz_generator or LiteLLMQuizGenerator()
        self._event_bus = event_bus or get_event_bus()

        self._tasks: Dict[str, DueTask] = {}
        self._book_info: Dict[str, _BookInfo] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_due(self, now: Optional[datetime] = None) -> List[DueTask]:
        """Load pending tasks due at or before *now* and rebuild their theme state.

        Tasks whose study log is gone, whose note is blank, or whose every
        theme is already resolved are left out.

        Raises:
            PersistenceFailure: If the tasks cannot be read.
        """
        now = now or self.clock.now()
        try:
            rows = await self._task_repo.list_due(self.user_id, now)
            resolutions = await self._resolutions.list_for_tasks([r.id for r in rows])
            book_ids = sorted(
                {
                    r.study_log.reference_book_id
                    for r in rows
                    if r.study_log is not None and r.study_log.reference_book_id
                }
            )
            books = await self._books.list_by_ids(book_ids)
        except PERSISTENCE_ERRORS as e:
            log_review_failure("load_due", e, {"user_id": self.user_id})
            raise PersistenceFailure("load_due", e) from e

        # Matched by theme text; an edited note can move a theme to another index
        resolved: Dict[str, Dict[str, ReviewThemeResolution]] = {}
        for resolution in resolutions:
            resolved.setdefault(resolution.review_task_id, {})[
                resolution.theme
            ] = resolution

        tasks: Dict[str, DueTask] = {}
        for row in rows:
            log = row.study_log
            if log is None or not log.has_note:
                logger.warning(
                    f"Skipping review task {row.id}: study log missing or note empty"
                )
                continue

            task = DueTask(
                id=row.id,
                study_log_id=row.study_log_id,
                user_id=row.user_id,
                due_at=row.due_at,
                subject=log.subject,
                reference_book_id=log.reference_book_id,
                started_at=log.started_at,
                study_day=self.clock.study_day(log.started_at),
                note=log.note,
                themes={t.index: ThemeState(theme=t) for t in build_themes(log.note)},
            )
            stored = resolved.get(row.id, {})
            for state in task.themes.values():
                resolution = stored.get(state.theme.text)
                if resolution is not None:
                    state.outcome = resolution.outcome
                    state.failed = resolution.had_failure

            if not task.visible_themes:
                logger.warning(f"Skipping review task {row.id}: no visible themes left")
                continue
            tasks[task.id] = task

        self._tasks = tasks
        self._book_info = {
            b.id: _BookInfo(name=b.name, image_url=b.image_url, is_deleted=b.is_deleted)
            for b in books
        }
        logger.info(f"Loaded {len(tasks)} due review tasks for user {self.user_id}")
        return list(tasks.values())

    @property
    def tasks(self) -> List[DueTask]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> DueTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise ReviewTaskNotFound(task_id) from None

    def visible_themes(self, task_id: str) -> List[Theme]:
        return self.get_task(task_id).visible_themes

    def theme_state(self, task_id: str, theme_index: int) -> ThemeState:
        """State of any theme of the task, resolved or not."""
        task = self.get_task(task_id)
        try:
            return task.themes[theme_index]
        except KeyError:
            raise ThemeNotFound(task_id, theme_index) from None

    def group_tasks(self) -> List[TaskGroup]:
        """Group loaded tasks by reference book or subject, sorted by title."""
        groups: Dict[str, TaskGroup] = {}
        for task in self._tasks.values():
            group = groups.get(task.group_key)
            if group is None:
                group = TaskGroup(key=task.group_key, title=task.subject)
                book = self._book_info.get(task.reference_book_id or "")
                if book is not None and not book.is_deleted:
                    group.title = book.name
                    group.image_url = book.image_url
                groups[task.group_key] = group
            group.tasks.append(task)
            group.buckets.setdefault(task.bucket_key, []).append(task)

        return sorted(groups.values(), key=lambda g: g.title)

    def is_group_resolved(self, group_key: str) -> bool:
        for group in self.group_tasks():
            if group.key == group_key:
                return group.is_resolved
        return True

    # ------------------------------------------------------------------
    # Quiz path
    # ------------------------------------------------------------------

    async def generate_quiz(
        self,
        task_id: str,
        theme_index: int,
        count: Optional[int] = None,
        difficulty: Optional[str] = None,
    ) -> List[QuizQuestion]:
        """Generate (or regenerate) the quiz for a visible quiz-mode theme.

        On failure the theme's quiz state goes back to "not generated" and
        the error is re-raised; nothing is retried here.
        """
        task = self._pending_task(task_id)
        state = self._visible_state(task, theme_index)
        if state.theme.mode != ThemeMode.QUIZ:
            raise InvalidStudyInput(
                "theme_index", "flashcard themes are graded by recall, not by quiz"
            )

        state.reset_quiz()
        state.quiz_status = QuizStatus.LOADING
        try:
            questions = await self.quiz_generator.generate_quiz(
                state.theme.text, count=count, difficulty=difficulty
            )
        except Exception as e:
            state.reset_quiz()
            logger.warning(f"Quiz generation failed for task {task_id}: {e}")
            raise

        if self._closed:
            logger.debug(f"Session closed during quiz generation for task {task_id}")
            state.reset_quiz()
            return []

        state.questions = list(questions)
        state.quiz_status = QuizStatus.READY
        return state.questions

    async def answer(
        self,
        task_id: str,
        theme_index: int,
        question_index: int,
        selected_index: int,
    ) -> Optional[bool]:
        """Record an answer to one quiz question and return whether it was correct.

        ``selected_index`` of -1 means "don't know" and counts as wrong.
        Answering the theme's last question resolves the theme.

        Raises:
            PersistenceFailure: If the attempt cannot be stored; the answer
                is then not applied and may be retried.
        """
        if self._closed:
            logger.debug(f"Ignoring answer on closed session for task {task_id}")
            return None

        task = self._pending_task(task_id)
        state = self._visible_state(task, theme_index)
        if state.quiz_status != QuizStatus.READY:
            raise InvalidStudyInput("question_index", "no quiz generated for this theme")
        if not 0 <= question_index < len(state.questions):
            raise InvalidStudyInput("question_index", f"out of range: {question_index}")
        if question_index in state.answers:
            raise InvalidStudyInput("question_index", "question already answered")

        question = state.questions[question_index]
        if not DONT_KNOW_INDEX <= selected_index < len(question.choices):
            raise InvalidStudyInput("selected_index", f"out of range: {selected_index}")

        is_correct = question.is_correct(selected_index)
        attempt = QuizAttempt(
            id=new_id(),
            user_id=task.user_id,
            review_task_id=task.id,
            question=question.question,
            choices=list(question.choices),
            correct_index=question.correct_index,
            selected_index=selected_index,
            is_correct=is_correct,
        )
        try:
            await self._attempts.add(attempt)
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            log_review_failure("record_quiz_attempt", e, self._task_details(task))
            raise PersistenceFailure("record_quiz_attempt", e) from e

        state.answers[question_index] = selected_index
        state.ratings.append(SM2Rating.PERFECT if is_correct else SM2Rating.HARD)
        if not is_correct:
            state.failed = True

        if state.all_answered and not self._closed:
            await self._resolve_theme(task, state, ThemeOutcome.COMPLETED)
        return is_correct

    # ------------------------------------------------------------------
    # Flashcard path
    # ------------------------------------------------------------------

    async def grade_flashcard(
        self,
        task_id: str,
        theme_index: int,
        remembered: bool,
        rating: Optional[SM2Rating] = None,
    ) -> Optional[bool]:
        """Self-grade a flashcard theme.

        "Not yet" marks the theme as failed and keeps it visible; a later
        "remembered" resolves it, rescheduling the log first if it had failed.
        Returns whether the theme was resolved.
        """
        if self._closed:
            return None

        task = self._pending_task(task_id)
        state = self._visible_state(task, theme_index)
        if state.theme.mode != ThemeMode.FLASHCARD:
            raise InvalidStudyInput("theme_index", "theme is not a flashcard")

        if not remembered:
            state.failed = True
            state.ratings.append(SM2Rating.HARD)
            return False

        if rating is None:
            rating = SM2Rating.GOOD if state.failed else SM2Rating.PERFECT
        state.ratings.append(SM2Rating(rating))
        await self._resolve_theme(task, state, ThemeOutcome.COMPLETED)
        return True

    # ------------------------------------------------------------------
    # Skipping
    # ------------------------------------------------------------------

    async def skip_theme(self, task_id: str, theme_index: int) -> None:
        """Dismiss one theme; the task ends only if this empties its visible set."""
        if self._closed:
            return
        task = self._pending_task(task_id)
        state = self._visible_state(task, theme_index)
        await self._resolve_theme(task, state, ThemeOutcome.SKIPPED)

    async def skip_task(self, task_id: str) -> ReviewTaskStatus:
        """Discard the whole task, moving it to ``skipped``."""
        if self._closed:
            return self.get_task(task_id).status
        task = self._pending_task(task_id)
        try:
            updated = await self._task_repo.set_status(task.id, ReviewTaskStatus.SKIPPED)
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            log_review_failure("skip_task", e, self._task_details(task))
            raise PersistenceFailure("skip_task", e) from e

        await self._after_status_write(task, ReviewTaskStatus.SKIPPED, updated)
        return task.status

    # ------------------------------------------------------------------
    # Adaptive scheduling
    # ------------------------------------------------------------------

    def task_rating(self, task_id: str) -> SM2Rating:
        """Harshest rating given to any theme of the task."""
        task = self.get_task(task_id)
        return worst_rating(r for s in task.themes.values() for r in s.ratings)

    async def schedule_adaptive(
        self, task_id: str, state: SM2State, now: Optional[datetime] = None
    ):
        """Replace the log's future schedule with one SM-2 task from this task's rating."""
        task = self.get_task(task_id)
        return await self.scheduler.schedule_adaptive(
            task.study_log_id, task.user_id, self.task_rating(task_id), state, now=now
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pending_task(self, task_id: str) -> DueTask:
        task = self.get_task(task_id)
        if not task.is_pending:
            raise TaskAlreadyResolved(task.id, task.status.value)
        return task

    @staticmethod
    def _visible_state(task: DueTask, theme_index: int) -> ThemeState:
        state = task.themes.get(theme_index)
        if state is None or not state.is_visible:
            raise ThemeNotFound(task.id, theme_index)
        return state

    @staticmethod
    def _task_details(task: DueTask) -> Dict[str, str]:
        return {
            "task_id": task.id,
            "study_log_id": task.study_log_id,
            "user_id": task.user_id,
        }

    async def _stored_resolution(
        self, task: DueTask, state: ThemeState
    ) -> Optional[ReviewThemeResolution]:
        try:
            return await self._resolutions.get_for_theme(task.id, state.theme.text)
        except PERSISTENCE_ERRORS as e:
            raise PersistenceFailure("resolve_theme", e) from e

    async def _resolve_theme(
        self, task: DueTask, state: ThemeState, outcome: ThemeOutcome
    ) -> None:
        """Record a theme's outcome and finalize the task if nothing is left visible.

        A theme with a wrong answer rebuilds the log's schedule first; if that
        fails the theme stays visible and the task stays pending. A theme
        another device already resolved takes the stored outcome instead and
        is not rescheduled again.
        """
        stored = await self._stored_resolution(task, state)
        if stored is not None:
            logger.info(
                f"Theme {state.theme.index} of task {task.id} already resolved "
                f"as {stored.outcome.value}"
            )
            outcome = stored.outcome
        elif state.failed:
            await self.scheduler.reschedule_from_now(task.study_log_id, task.user_id)

        text = state.theme.text
        remaining = [
            s for s in task.themes.values() if s.is_visible and s.theme.text != text
        ]
        final_status: Optional[ReviewTaskStatus] = None
        if not remaining:
            outcomes = [s.outcome for s in task.themes.values() if s.theme.text != text]
            outcomes.append(outcome)
            final_status = (
                ReviewTaskStatus.COMPLETED
                if ThemeOutcome.COMPLETED in outcomes
                else ReviewTaskStatus.SKIPPED
            )

        updated = False
        try:
            if stored is None:
                await self._resolutions.add(
                    ReviewThemeResolution(
                        id=new_id(),
                        review_task_id=task.id,
                        theme_index=state.theme.index,
                        theme=text,
                        outcome=outcome,
                        had_failure=state.failed,
                    )
                )
            if final_status is not None:
                updated = await self._task_repo.set_status(task.id, final_status)
            await self._session.commit()
        except PERSISTENCE_ERRORS as e:
            await self._session.rollback()
            if (
                isinstance(e, IntegrityError)
                and stored is None
                and await self._stored_resolution(task, state) is not None
            ):
                # Recorded elsewhere between the lookup and the insert
                await self._resolve_theme(task, state, outcome)
                return
            log_review_failure(
                "resolve_theme",
                e,
                {**self._task_details(task), "theme_index": state.theme.index},
            )
            raise PersistenceFailure("resolve_theme", e) from e

        for sibling in task.themes.values():
            if sibling.theme.text == text:
                sibling.outcome = outcome
        logger.debug(
            f"Theme {state.theme.index} of task {task.id} {outcome.value}; "
            f"{len(remaining)} left"
        )
        if final_status is not None:
            await self._after_status_write(task, final_status, updated)

    async def _after_status_write(
        self, task: DueTask, status: ReviewTaskStatus, updated: bool
    ) -> None:
        if not updated:
            # Another device already resolved it
            logger.info(f"Review task {task.id} was no longer pending")
            try:
                row = await self._task_repo.get(task.id)
            except PERSISTENCE_ERRORS as e:
                raise PersistenceFailure("refresh_task", e) from e
            task.status = row.status if row is not None else status
            return

        task.status = status
        if status == ReviewTaskStatus.COMPLETED:
            log_review_event("task_completed", self._task_details(task))
            event = ReviewTaskCompleted(
                task_id=task.id, study_log_id=task.study_log_id, user_id=task.user_id
            )
        else:
            log_review_event("task_skipped", self._task_details(task))
            event = ReviewTaskSkipped(
                task_id=task.id, study_log_id=task.study_log_id, user_id=task.user_id
            )
        await self._event_bus.publish(event)
