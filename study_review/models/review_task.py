"""
Review task and per-theme resolution models.

ReviewTask: one scheduled check-in tied to exactly one study log.
ReviewThemeResolution: persisted outcome of one theme inside a task, so the
visible-theme set survives reloads and a second device.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, id_column

if TYPE_CHECKING:
    from .study_log import StudyLog


class ReviewTaskStatus(str, enum.Enum):
    """Lifecycle status of a review task. Both non-pending states are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ThemeOutcome(str, enum.Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ReviewTask(Base, TimestampMixin):
    __tablename__ = "review_tasks"

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    study_log_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_logs.id", ondelete="CASCADE"), nullable=False
    )
    due_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    status: Mapped[ReviewTaskStatus] = mapped_column(
        Enum(ReviewTaskStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReviewTaskStatus.PENDING,
    )

    # Relationships
    study_log: Mapped[Optional["StudyLog"]] = relationship(
        "StudyLog", back_populates="review_tasks"
    )
    theme_resolutions: Mapped[List["ReviewThemeResolution"]] = relationship(
        "ReviewThemeResolution",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ReviewTaskStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<ReviewTask(id={self.id}, study_log_id={self.study_log_id}, "
            f"due_at={self.due_at}, status={self.status})>"
        )


class ReviewThemeResolution(Base, TimestampMixin):
    __tablename__ = "review_theme_resolutions"
    __table_args__ = (
        UniqueConstraint("review_task_id", "theme", name="uq_task_theme"),
    )

    id: Mapped[str] = id_column()
    review_task_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("review_tasks.id", ondelete="CASCADE"), nullable=False
    )
    # Position when resolved; resolutions are matched to themes by text
    theme_index: Mapped[int] = mapped_column(Integer, nullable=False)
    theme: Mapped[str] = mapped_column(Text, nullable=False)
    outcome: Mapped[ThemeOutcome] = mapped_column(
        Enum(ThemeOutcome, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    had_failure: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    task: Mapped["ReviewTask"] = relationship(
        "ReviewTask", back_populates="theme_resolutions"
    )

    def __repr__(self) -> str:
        return (
            f"<ReviewThemeResolution(task_id={self.review_task_id}, "
            f"index={self.theme_index}, outcome={self.outcome})>"
        )
