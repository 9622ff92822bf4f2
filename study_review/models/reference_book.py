"""
Reference book model: a named study material, optionally soft-deleted.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime, id_column


class ReferenceBook(Base, TimestampMixin):
    __tablename__ = "reference_books"

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="book")
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<ReferenceBook(id={self.id}, name={self.name})>"
