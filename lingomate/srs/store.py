"""SQLAlchemy-backed storage boundary for vocabulary and review state.

The scheduler never touches the database. Everything it reads or writes
goes through ReviewStore, which turns database errors into StorageFailure
and enforces one applied update per loaded state.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from datetime import datetime
from typing import ParamSpec, TypeVar

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from lingomate.config import settings, utcnow
from lingomate.models.review_log import ReviewLog
from lingomate.models.vocabulary import Vocabulary
from lingomate.models.vocabulary_review import VocabularyReview
from lingomate.srs.errors import ConcurrentReviewError, InvalidWord, NotFound, StorageFailure
from lingomate.srs.sm2 import ReviewState

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

_read_retry = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(settings.storage_read_retries),
    wait=wait_exponential(multiplier=0.05, max=1),
    reraise=True,
)


def _storage_errors(func_: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    @functools.wraps(func_)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func_(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("Review store operation %s failed", func_.__name__)
            raise StorageFailure(f"Storage operation {func_.__name__} failed: {e}") from e

    return wrapper


def state_from_row(row: VocabularyReview) -> ReviewState:
    return ReviewState(
        interval_days=row.interval_days,
        ease_factor=float(row.ease_factor),
        repetitions=row.repetitions,
        next_review_date=row.next_review_date,
        last_reviewed_at=row.last_reviewed_at,
        review_count=row.review_count,
        consecutive_correct=row.consecutive_correct,
        consecutive_incorrect=row.consecutive_incorrect,
    )


def normalize_word(word: str) -> str:
    return word.strip().lower()


class ReviewStore:
    """Review-state persistence bound to one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Vocabulary ---

    @_storage_errors
    @_read_retry
    async def get_vocabulary(self, vocabulary_id: int, user_id: str | None = None) -> Vocabulary:
        """Return the vocabulary row, raising NotFound if it doesn't exist for the user."""
        stmt = select(Vocabulary).where(Vocabulary.id == vocabulary_id)
        if user_id is not None:
            stmt = stmt.where(Vocabulary.user_id == user_id)
        vocab = (await self.session.execute(stmt)).scalar_one_or_none()
        if vocab is None:
            raise NotFound(f"Vocabulary {vocabulary_id} not found")
        return vocab

    @_storage_errors
    @_read_retry
    async def list_vocabulary(self, user_id: str) -> list[Vocabulary]:
        stmt = (
            select(Vocabulary)
            .where(Vocabulary.user_id == user_id)
            .order_by(Vocabulary.created_at.desc(), Vocabulary.id.desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    @_storage_errors
    @_read_retry
    async def get_vocabulary_by_word(self, user_id: str, word: str) -> Vocabulary:
        """Look up a word by its normalized spelling, raising NotFound if absent."""
        normalized = normalize_word(word)
        stmt = select(Vocabulary).where(
            and_(Vocabulary.user_id == user_id, Vocabulary.word == normalized)
        )
        vocab = (await self.session.execute(stmt)).scalar_one_or_none()
        if vocab is None:
            raise NotFound(f"Word {word!r} not found")
        return vocab

    @_storage_errors
    @_read_retry
    async def get_vocabulary_for_words(
        self, user_id: str, words: list[str]
    ) -> dict[str, Vocabulary]:
        """Batch lookup keyed by normalized word. Unknown and blank words are left out."""
        normalized = {normalize_word(w) for w in words} - {""}
        if not normalized:
            return {}
        stmt = select(Vocabulary).where(
            and_(Vocabulary.user_id == user_id, Vocabulary.word.in_(normalized))
        )
        return {v.word: v for v in (await self.session.execute(stmt)).scalars().all()}

    @_storage_errors
    async def upsert_vocabulary(
        self,
        user_id: str,
        word: str,
        comprehension: int,
        translation: str | None = None,
        language: str | None = None,
    ) -> tuple[Vocabulary, bool]:
        """Create a word or update the existing one with the same normalized spelling.

        Returns:
            Tuple of (vocabulary row, created flag).

        Raises:
            InvalidWord: If the word is blank once normalized.
        """
        normalized = normalize_word(word)
        if not normalized:
            raise InvalidWord("Word must not be blank")
        stmt = select(Vocabulary).where(
            and_(Vocabulary.user_id == user_id, Vocabulary.word == normalized)
        )
        existing = (await self.session.execute(stmt)).scalar_one_or_none()
        if existing is not None:
            existing.comprehension = comprehension
            if translation:
                existing.translation = translation
            if language:
                existing.language = language
            await self.session.flush()
            return existing, False

        vocab = Vocabulary(
            user_id=user_id,
            word=normalized,
            translation=translation or "",
            language=language or "unknown",
            comprehension=comprehension,
        )
        self.session.add(vocab)
        await self.session.flush()
        return vocab, True

    @_storage_errors
    async def delete_vocabulary(self, vocabulary_id: int, user_id: str) -> None:
        result = await self.session.execute(
            delete(Vocabulary).where(
                and_(Vocabulary.id == vocabulary_id, Vocabulary.user_id == user_id)
            )
        )
        if result.rowcount == 0:
            raise NotFound(f"Vocabulary {vocabulary_id} not found")

    # --- Review state ---

    @_storage_errors
    @_read_retry
    async def load_review_state(self, vocabulary_id: int) -> ReviewState | None:
        stmt = select(VocabularyReview).where(VocabularyReview.vocabulary_id == vocabulary_id)
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return state_from_row(row) if row is not None else None

    @_storage_errors
    async def create_review_state(self, vocabulary_id: int, state: ReviewState) -> bool:
        """Insert a review state unless one already exists.

        Returns:
            True if a row was created, False if the item already had one.
        """
        dialect = self.session.get_bind().dialect.name
        inserts = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}
        if dialect not in inserts:
            raise StorageFailure(f"Unsupported database dialect for review inserts: {dialect}")
        insert = inserts[dialect]
        now = utcnow()
        stmt = (
            insert(VocabularyReview)
            .values(vocabulary_id=vocabulary_id, created_at=now, updated_at=now, **asdict(state))
            .on_conflict_do_nothing(index_elements=["vocabulary_id"])
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    @_storage_errors
    async def save_review_state(
        self,
        vocabulary_id: int,
        state: ReviewState,
        expected_review_count: int,
    ) -> None:
        """Replace the stored state if it still matches the one it was computed from.

        Raises:
            ConcurrentReviewError: If another review was applied in the meantime.
        """
        stmt = (
            update(VocabularyReview)
            .where(
                and_(
                    VocabularyReview.vocabulary_id == vocabulary_id,
                    VocabularyReview.review_count == expected_review_count,
                )
            )
            .values(**asdict(state))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "Review state for vocabulary %d changed since load (expected review_count=%d)",
                vocabulary_id,
                expected_review_count,
            )
            raise ConcurrentReviewError(
                f"Review state for vocabulary {vocabulary_id} was modified concurrently"
            )

    @_storage_errors
    @_read_retry
    async def list_vocabulary_without_review(self, user_id: str) -> list[Vocabulary]:
        stmt = (
            select(Vocabulary)
            .outerjoin(VocabularyReview, VocabularyReview.vocabulary_id == Vocabulary.id)
            .where(and_(Vocabulary.user_id == user_id, VocabularyReview.id.is_(None)))
            .order_by(Vocabulary.id.asc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    @_storage_errors
    @_read_retry
    async def list_all_vocabulary_with_review(
        self,
        user_id: str,
        as_of: datetime | None = None,
    ) -> list[tuple[Vocabulary, ReviewState | None]]:
        """Return a user's words paired with their review state.

        When as_of is given, rows scheduled after it are filtered out in SQL.
        """
        stmt = (
            select(Vocabulary, VocabularyReview)
            .outerjoin(VocabularyReview, VocabularyReview.vocabulary_id == Vocabulary.id)
            .where(Vocabulary.user_id == user_id)
        )
        if as_of is not None:
            stmt = stmt.where(
                or_(
                    VocabularyReview.next_review_date.is_(None),
                    VocabularyReview.next_review_date <= as_of,
                )
            )
        rows = (await self.session.execute(stmt)).all()
        return [
            (vocab, state_from_row(review) if review is not None else None)
            for vocab, review in rows
        ]

    # --- Review logs ---

    @_storage_errors
    async def add_review_log(
        self,
        vocabulary_id: int,
        user_id: str,
        rating: int,
        before: ReviewState,
        after: ReviewState,
        time_ms: int | None = None,
    ) -> None:
        review_id = (
            await self.session.execute(
                select(VocabularyReview.id).where(VocabularyReview.vocabulary_id == vocabulary_id)
            )
        ).scalar_one()
        self.session.add(
            ReviewLog(
                review_id=review_id,
                user_id=user_id,
                rating=rating,
                time_ms=time_ms,
                interval_before=before.interval_days,
                interval_after=after.interval_days,
                ease_before=before.ease_factor,
                ease_after=after.ease_factor,
                reviewed_at=after.last_reviewed_at or utcnow(),
            )
        )
        await self.session.flush()

    @_storage_errors
    @_read_retry
    async def count_reviews_since(self, user_id: str, since: datetime) -> int:
        stmt = select(func.count(ReviewLog.id)).where(
            and_(ReviewLog.user_id == user_id, ReviewLog.reviewed_at >= since)
        )
        return (await self.session.execute(stmt)).scalar() or 0

    # --- Transactions ---

    @_storage_errors
    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
