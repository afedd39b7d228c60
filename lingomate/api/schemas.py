"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, StringConstraints

# --- Vocabulary ---


class VocabularyCreate(BaseModel):
    word: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    comprehension: int = Field(ge=1, le=5)
    translation: str | None = None
    language: str | None = None


class VocabularyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    word: str
    translation: str
    language: str
    comprehension: int
    created_at: datetime
    updated_at: datetime


# --- Reviews ---


class ReviewStateResponse(BaseModel):
    """Scheduling state of a vocabulary item."""

    model_config = ConfigDict(from_attributes=True)

    vocabulary_id: int
    interval_days: int
    ease_factor: float
    repetitions: int
    next_review_date: datetime | None
    last_reviewed_at: datetime | None
    review_count: int
    consecutive_correct: int
    consecutive_incorrect: int


class ReviewEnvelope(BaseModel):
    review: ReviewStateResponse


class ReviewInitRequest(BaseModel):
    vocabulary_id: int


class ReviewSubmission(BaseModel):
    """Request to record a review of a vocabulary item."""

    vocabulary_id: int
    quality: StrictInt | StrictStr  # 0=Again, 1=Hard, 3=Good, 4=Easy, or the rating name
    time_ms: int | None = Field(default=None, ge=0)
    reviewed_at: datetime | None = None


class DueWordResponse(BaseModel):
    vocabulary: VocabularyResponse
    review: ReviewStateResponse | None
    is_due_for_review: bool = True
    days_until_review: int


class DueWordsResponse(BaseModel):
    words: list[DueWordResponse]
    count: int


class CountResponse(BaseModel):
    count: int


class InitializeResponse(BaseModel):
    message: str
    count: int
