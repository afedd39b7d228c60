"""Due-set selection for vocabulary reviews.

A word is due when it has never been scheduled or its next review date has
arrived. Never-scheduled words come first (oldest word first), then the
rest from most to least overdue.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from lingomate.models.vocabulary import Vocabulary
from lingomate.srs.errors import InvalidLimit
from lingomate.srs.sm2 import ReviewState, days_until_review, is_due
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueWord:
    """A vocabulary item that is ready for review."""

    vocabulary: Vocabulary
    review: ReviewState | None
    days_until_review: int


def validate_limit(raw: object) -> int | None:
    """Parse an optional result cap.

    Accepts None, positive ints, and strings holding a positive int.

    Raises:
        InvalidLimit: For zero, negatives, fractions, booleans or non-numeric values.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise InvalidLimit(f"Invalid limit parameter: {raw!r}")
    if isinstance(raw, str):
        text = raw.strip()
        if not (text.isascii() and text.isdecimal()):
            raise InvalidLimit(f"Invalid limit parameter: {raw!r}")
        value = int(text)
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    else:
        raise InvalidLimit(f"Invalid limit parameter: {raw!r}")

    if value < 1:
        raise InvalidLimit(f"Invalid limit parameter: {raw!r}. Must be a positive integer")
    return value


def _sort_key(item: DueWord) -> tuple[int, datetime, int]:
    if item.review is None or item.review.next_review_date is None:
        return (0, datetime.min, item.vocabulary.id)
    return (1, item.review.next_review_date, item.vocabulary.id)


def select_due(
    pairs: Iterable[tuple[Vocabulary, ReviewState | None]],
    as_of: datetime,
    limit: int | None = None,
) -> list[DueWord]:
    """Filter and order the words that are due as of the given time.

    Args:
        pairs: Vocabulary rows with their review state (None if never initialized).
        as_of: The reference time.
        limit: Optional cap on the number of words returned.

    Returns:
        Due words, unscheduled first, then by ascending next review date.
    """
    limit = validate_limit(limit)
    due = [
        DueWord(vocabulary=vocab, review=state, days_until_review=days_until_review(state, as_of))
        for vocab, state in pairs
        if is_due(state, as_of)
    ]
    due.sort(key=_sort_key)
    if limit is not None:
        due = due[:limit]
    return due


async def due_words(
    store: ReviewStore,
    user_id: str,
    as_of: datetime,
    limit: int | None = None,
) -> list[DueWord]:
    """Fetch a user's due words from the store."""
    limit = validate_limit(limit)
    pairs = await store.list_all_vocabulary_with_review(user_id, as_of)
    words = select_due(pairs, as_of, limit)
    logger.info("User %s has %d due words (limit=%s)", user_id, len(words), limit)
    return words


async def due_count(store: ReviewStore, user_id: str, as_of: datetime) -> int:
    pairs = await store.list_all_vocabulary_with_review(user_id, as_of)
    return sum(1 for _, state in pairs if is_due(state, as_of))
