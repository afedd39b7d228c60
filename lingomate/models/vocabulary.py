from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingomate.models.base import Base, TimestampMixin


class Vocabulary(Base, TimestampMixin):
    """A word/translation pair a user is learning."""

    __tablename__ = "vocabulary"
    __table_args__ = (UniqueConstraint("user_id", "word", name="uq_vocabulary_user_word"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    word: Mapped[str] = mapped_column(String(500), nullable=False)  # lower-cased, stripped
    translation: Mapped[str] = mapped_column(String(500), nullable=False)
    language: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")
    comprehension: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # 1-5

    review: Mapped["VocabularyReview"] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="vocabulary",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
