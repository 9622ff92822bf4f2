"""
Study log model: one logged study session.

Only logs with a non-empty note take part in review scheduling.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, id_column

if TYPE_CHECKING:
    from .reference_book import ReferenceBook
    from .review_task import ReviewTask


class StudyLog(Base, TimestampMixin):
    __tablename__ = "study_logs"

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    reference_book_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("reference_books.id"), nullable=True
    )
    study_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    reference_book: Mapped[Optional["ReferenceBook"]] = relationship(
        "ReferenceBook", lazy="joined"
    )
    review_tasks: Mapped[List["ReviewTask"]] = relationship(
        "ReviewTask", back_populates="study_log", cascade="all, delete-orphan"
    )

    @property
    def has_note(self) -> bool:
        return bool(self.note and self.note.strip())

    def __repr__(self) -> str:
        return (
            f"<StudyLog(id={self.id}, user_id={self.user_id}, "
            f"subject={self.subject}, minutes={self.study_minutes})>"
        )
