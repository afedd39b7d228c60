"""SM-2 spaced repetition scheduler for vocabulary reviews.

Key concepts:
- Interval: days until the next review after the last schedule computation.
- Ease factor: multiplier applied to the interval on each successful recall.
- Repetitions: consecutive successful recalls since the last lapse.
- Rating: 0=Again, 1=Hard, 3=Good, 4=Easy (the 4-button review UI values).

Again is a lapse. Hard, Good and Easy are all successful recalls with
increasing ease.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import IntEnum

from lingomate.config import settings
from lingomate.srs.errors import InvalidRating


class Rating(IntEnum):
    AGAIN = 0
    HARD = 1
    GOOD = 3
    EASY = 4


# Ease adjustment applied after a successful recall
DEFAULT_EASE_DELTAS: dict[Rating, float] = {
    Rating.HARD: -0.15,
    Rating.GOOD: 0.0,
    Rating.EASY: 0.15,
}

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
RELEARN_INTERVAL_DAYS = 1


@dataclass(frozen=True)
class ReviewState:
    """The scheduling state of one vocabulary item."""

    interval_days: int = 0
    ease_factor: float = 2.5
    repetitions: int = 0
    next_review_date: datetime | None = None  # None: never scheduled, due now
    last_reviewed_at: datetime | None = None
    review_count: int = 0
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0


def parse_rating(value: object) -> Rating:
    """Coerce a rating given as a Rating, its wire int, or its name.

    Raises:
        InvalidRating: If the value is outside the closed rating set.
    """
    if isinstance(value, Rating):
        return value
    if isinstance(value, bool):
        raise InvalidRating(f"Invalid rating: {value!r}")
    if isinstance(value, int):
        try:
            return Rating(value)
        except ValueError:
            raise InvalidRating(
                f"Invalid rating: {value}. Expected one of 0, 1, 3, 4"
            ) from None
    if isinstance(value, str):
        name = value.strip().upper()
        if name in Rating.__members__:
            return Rating[name]
        if name.isascii() and name.isdecimal():
            return parse_rating(int(name))
    raise InvalidRating(f"Invalid rating: {value!r}")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def new_review_state(ease_factor: float | None = None) -> ReviewState:
    """Return the default state for a word that has never been reviewed."""
    if ease_factor is None:
        ease_factor = settings.default_ease_factor
    return ReviewState(ease_factor=ease_factor)


class SM2Scheduler:
    """Computes the next review state from the current one and a rating."""

    def __init__(
        self,
        default_ease: float | None = None,
        min_ease: float | None = None,
        lapse_penalty: float | None = None,
        ease_deltas: dict[Rating, float] | None = None,
    ) -> None:
        self.default_ease = settings.default_ease_factor if default_ease is None else default_ease
        self.min_ease = settings.min_ease_factor if min_ease is None else min_ease
        self.lapse_penalty = settings.lapse_ease_penalty if lapse_penalty is None else lapse_penalty
        self.ease_deltas = ease_deltas or DEFAULT_EASE_DELTAS

    def schedule(
        self,
        state: ReviewState | None,
        rating: Rating | int | str,
        reviewed_at: datetime,
    ) -> ReviewState:
        """Apply a review rating and return the new state.

        Args:
            state: Current state, or None for a word that was never initialized.
            rating: The learner's recall quality.
            reviewed_at: When the review happened.

        Returns:
            A new ReviewState. The input state is left untouched.
        """
        rating = parse_rating(rating)
        if state is None:
            state = new_review_state(self.default_ease)

        if rating == Rating.AGAIN:
            ease = self._floor_ease(state.ease_factor - self.lapse_penalty)
            interval = RELEARN_INTERVAL_DAYS
            repetitions = 0
            consecutive_correct = 0
            consecutive_incorrect = state.consecutive_incorrect + 1
        else:
            ease = self._floor_ease(state.ease_factor + self.ease_deltas[rating])
            interval = self._success_interval(state, ease)
            repetitions = state.repetitions + 1
            consecutive_correct = state.consecutive_correct + 1
            consecutive_incorrect = 0

        return replace(
            state,
            interval_days=interval,
            ease_factor=ease,
            repetitions=repetitions,
            next_review_date=reviewed_at + timedelta(days=interval),
            last_reviewed_at=reviewed_at,
            review_count=state.review_count + 1,
            consecutive_correct=consecutive_correct,
            consecutive_incorrect=consecutive_incorrect,
        )

    def _floor_ease(self, ease: float) -> float:
        return round(max(self.min_ease, ease), 2)

    def _success_interval(self, state: ReviewState, ease: float) -> int:
        if state.repetitions == 0:
            return FIRST_INTERVAL_DAYS
        if state.repetitions == 1:
            return SECOND_INTERVAL_DAYS
        return max(1, round_half_up(state.interval_days * ease))


def is_due(state: ReviewState | None, as_of: datetime) -> bool:
    """Return True if the word has never been scheduled or its date has arrived."""
    if state is None or state.next_review_date is None:
        return True
    return state.next_review_date <= as_of


def days_until_review(state: ReviewState | None, as_of: datetime) -> int:
    """Whole days until the next review, rounded up; negative when overdue."""
    if state is None or state.next_review_date is None:
        return 0
    seconds = (state.next_review_date - as_of).total_seconds()
    return math.ceil(seconds / 86400)
