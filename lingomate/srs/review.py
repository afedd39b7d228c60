"""Recording a review: load state, schedule, persist.

The store is the only thing with side effects here. A failed save rolls the
transaction back, so a computed state is either applied once or not at all.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from lingomate.config import utcnow
from lingomate.srs.errors import StorageFailure
from lingomate.srs.initializer import ensure_review
from lingomate.srs.sm2 import Rating, ReviewState, SM2Scheduler, parse_rating
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    vocabulary_id: int
    rating: Rating
    previous: ReviewState
    state: ReviewState


async def submit_review(
    store: ReviewStore,
    user_id: str,
    vocabulary_id: int,
    quality: Rating | int | str,
    reviewed_at: datetime | None = None,
    time_ms: int | None = None,
    scheduler: SM2Scheduler | None = None,
) -> ReviewOutcome:
    """Apply a learner's review of a word and persist the new schedule.

    Args:
        store: Review store bound to the request's session.
        user_id: The learner who owns the word.
        vocabulary_id: The reviewed word.
        quality: Recall quality (Again/Hard/Good/Easy).
        reviewed_at: When the review happened (defaults to now).
        time_ms: Optional response time in milliseconds.
        scheduler: Scheduler to use (defaults to one built from settings).

    Returns:
        ReviewOutcome with the state before and after the review.

    Raises:
        InvalidRating: Before anything is read or written.
        NotFound: If the word doesn't exist for this user.
        StorageFailure: If reading or writing failed; nothing is persisted.
    """
    rating = parse_rating(quality)
    reviewed_at = reviewed_at or utcnow()
    if reviewed_at.tzinfo is not None:
        reviewed_at = reviewed_at.astimezone(UTC).replace(tzinfo=None)
    scheduler = scheduler or SM2Scheduler()

    await store.get_vocabulary(vocabulary_id, user_id)
    try:
        previous = await ensure_review(store, vocabulary_id)
        new_state = scheduler.schedule(previous, rating, reviewed_at)
        await store.save_review_state(
            vocabulary_id, new_state, expected_review_count=previous.review_count
        )
        await store.add_review_log(
            vocabulary_id, user_id, int(rating), previous, new_state, time_ms=time_ms
        )
        await store.commit()
    except StorageFailure:
        await store.rollback()
        raise

    logger.info(
        "Review of vocabulary %d rated %s: interval %d -> %d days, ease %.2f -> %.2f",
        vocabulary_id,
        rating.name,
        previous.interval_days,
        new_state.interval_days,
        previous.ease_factor,
        new_state.ease_factor,
    )
    return ReviewOutcome(
        vocabulary_id=vocabulary_id, rating=rating, previous=previous, state=new_state
    )
