"""SQLAlchemy ORM models for the LingoMate database."""

from lingomate.models.base import Base
from lingomate.models.review_log import ReviewLog
from lingomate.models.vocabulary import Vocabulary
from lingomate.models.vocabulary_review import VocabularyReview

__all__ = ["Base", "ReviewLog", "Vocabulary", "VocabularyReview"]
