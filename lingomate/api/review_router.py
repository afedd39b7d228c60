"""API routes for vocabulary review scheduling."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends

from lingomate.api.dependencies import get_capability_checker, get_store, get_user_id
from lingomate.api.schemas import (
    CountResponse,
    DueWordResponse,
    DueWordsResponse,
    InitializeResponse,
    ReviewEnvelope,
    ReviewInitRequest,
    ReviewStateResponse,
    ReviewSubmission,
    VocabularyResponse,
)
from lingomate.capabilities import Action, CapabilityChecker, require
from lingomate.config import utcnow
from lingomate.srs.due import due_count, due_words, validate_limit
from lingomate.srs.errors import NotFound
from lingomate.srs.initializer import ensure_review, initialize_missing
from lingomate.srs.review import submit_review
from lingomate.srs.sm2 import ReviewState, parse_rating
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vocabulary/reviews", tags=["reviews"])


def _review_response(vocabulary_id: int, state: ReviewState) -> ReviewStateResponse:
    return ReviewStateResponse(vocabulary_id=vocabulary_id, **asdict(state))


@router.get("/due", response_model=DueWordsResponse)
async def get_due_words(
    limit: str | None = None,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> DueWordsResponse:
    """Get the words due for review, never-reviewed words first."""
    parsed_limit = validate_limit(limit)
    words = await due_words(store, user_id, utcnow(), parsed_limit)
    return DueWordsResponse(
        words=[
            DueWordResponse(
                vocabulary=VocabularyResponse.model_validate(w.vocabulary),
                review=_review_response(w.vocabulary.id, w.review) if w.review else None,
                days_until_review=w.days_until_review,
            )
            for w in words
        ],
        count=len(words),
    )


@router.get("/count", response_model=CountResponse)
async def get_due_words_count(
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> CountResponse:
    """Get the number of words due for review."""
    return CountResponse(count=await due_count(store, user_id, utcnow()))


@router.post("/initialize", response_model=InitializeResponse)
async def initialize_reviews(
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> InitializeResponse:
    """Create review entries for every word that doesn't have one yet."""
    count = await initialize_missing(store, user_id)
    return InitializeResponse(message=f"Initialized {count} review entries", count=count)


@router.post("", response_model=ReviewEnvelope)
async def initialize_review(
    request: ReviewInitRequest,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> ReviewEnvelope:
    """Initialize the review entry for a single word."""
    await store.get_vocabulary(request.vocabulary_id, user_id)
    state = await ensure_review(store, request.vocabulary_id)
    await store.commit()
    return ReviewEnvelope(review=_review_response(request.vocabulary_id, state))


@router.get("", response_model=ReviewEnvelope)
async def get_review(
    vocabulary_id: int,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> ReviewEnvelope:
    """Get the review entry for a word."""
    await store.get_vocabulary(vocabulary_id, user_id)
    state = await store.load_review_state(vocabulary_id)
    if state is None:
        raise NotFound("Review not found")
    return ReviewEnvelope(review=_review_response(vocabulary_id, state))


@router.put("", response_model=ReviewEnvelope)
async def record_review(
    request: ReviewSubmission,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
    checker: CapabilityChecker = Depends(get_capability_checker),
) -> ReviewEnvelope:
    """Record a review result and update the word's schedule."""
    rating = parse_rating(request.quality)
    await require(checker, user_id, Action.SUBMIT_REVIEW)
    outcome = await submit_review(
        store,
        user_id,
        request.vocabulary_id,
        rating,
        reviewed_at=request.reviewed_at,
        time_ms=request.time_ms,
    )
    return ReviewEnvelope(review=_review_response(outcome.vocabulary_id, outcome.state))
