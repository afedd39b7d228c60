"""Persisted SM-2 scheduling state, one row per vocabulary item."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingomate.models.base import Base, TimestampMixin


class VocabularyReview(Base, TimestampMixin):
    __tablename__ = "vocabulary_reviews"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vocabulary_id: Mapped[int] = mapped_column(
        ForeignKey("vocabulary.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_incorrect: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    vocabulary: Mapped["Vocabulary"] = relationship(back_populates="review")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="review", cascade="all, delete-orphan", passive_deletes=True
    )
