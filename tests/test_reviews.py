"""Tests for the review store, initializer, review service and capability checks."""

from dataclasses import replace
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from lingomate.capabilities import Action, PlanCapabilities, require
from lingomate.config import utcnow
from lingomate.models.review_log import ReviewLog
from lingomate.models.vocabulary import Vocabulary
from lingomate.srs.due import due_count, due_words
from lingomate.srs.errors import (
    CapabilityDenied,
    ConcurrentReviewError,
    InvalidLimit,
    InvalidRating,
    InvalidWord,
    NotFound,
    StorageFailure,
)
from lingomate.srs.initializer import ensure_review, initialize_missing
from lingomate.srs.review import submit_review
from lingomate.srs.sm2 import Rating, ReviewState, new_review_state
from lingomate.srs.store import ReviewStore

USER = "user-1"


async def _add_words(store: ReviewStore, *words: str, user_id: str = USER) -> list[Vocabulary]:
    created = []
    for word in words:
        vocab, _ = await store.upsert_vocabulary(user_id, word, 1, translation=f"{word}-t")
        created.append(vocab)
    await store.commit()
    return created


# --- Store ---


class TestReviewStore:
    @pytest.mark.asyncio
    async def test_upsert_normalizes_and_updates(self, store: ReviewStore) -> None:
        vocab, created = await store.upsert_vocabulary(USER, "  Hola ", 2, translation="hello")
        assert created
        assert vocab.word == "hola"

        again, created_again = await store.upsert_vocabulary(USER, "HOLA", 4)
        assert not created_again
        assert again.id == vocab.id
        assert again.comprehension == 4
        assert again.translation == "hello"

    @pytest.mark.asyncio
    async def test_get_vocabulary_scoped_to_user(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "perro")
        assert (await store.get_vocabulary(vocab.id, USER)).word == "perro"
        with pytest.raises(NotFound):
            await store.get_vocabulary(vocab.id, "someone-else")
        with pytest.raises(NotFound):
            await store.get_vocabulary(9999, USER)

    @pytest.mark.asyncio
    async def test_create_review_state_is_create_if_absent(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "casa")
        assert await store.create_review_state(vocab.id, new_review_state())
        assert not await store.create_review_state(
            vocab.id, ReviewState(interval_days=9, repetitions=3)
        )
        await store.commit()
        state = await store.load_review_state(vocab.id)
        assert state == new_review_state()

    @pytest.mark.asyncio
    async def test_save_rejects_stale_state(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "libro")
        base = await ensure_review(store, vocab.id)
        await store.commit()

        first = replace(base, review_count=1, interval_days=1)
        await store.save_review_state(vocab.id, first, expected_review_count=0)
        await store.commit()

        with pytest.raises(ConcurrentReviewError):
            await store.save_review_state(vocab.id, first, expected_review_count=0)
        await store.rollback()
        assert (await store.load_review_state(vocab.id)).review_count == 1

    @pytest.mark.asyncio
    async def test_delete_cascades_to_review(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "mesa")
        await ensure_review(store, vocab.id)
        await store.commit()

        await store.delete_vocabulary(vocab.id, USER)
        await store.commit()
        assert await store.load_review_state(vocab.id) is None
        with pytest.raises(NotFound):
            await store.delete_vocabulary(vocab.id, USER)

    @pytest.mark.asyncio
    async def test_read_retries_then_wraps_storage_failure(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("database is locked"))
        )
        store = ReviewStore(session)
        with pytest.raises(StorageFailure):
            await store.load_review_state(1)
        assert session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_create_review_state_rejects_unknown_dialect(self) -> None:
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "mysql"
        session.execute = AsyncMock()
        store = ReviewStore(session)
        with pytest.raises(StorageFailure, match="mysql"):
            await store.create_review_state(1, new_review_state())
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blank", ["", "   ", "\t\n"])
    async def test_upsert_rejects_blank_word(self, store: ReviewStore, blank: str) -> None:
        with pytest.raises(InvalidWord):
            await store.upsert_vocabulary(USER, blank, 1)
        assert await store.list_vocabulary(USER) == []

    @pytest.mark.asyncio
    async def test_get_vocabulary_by_word(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "gato")
        assert (await store.get_vocabulary_by_word(USER, "  GATO ")).id == vocab.id
        with pytest.raises(NotFound):
            await store.get_vocabulary_by_word("someone-else", "gato")
        with pytest.raises(NotFound):
            await store.get_vocabulary_by_word(USER, "perro")

    @pytest.mark.asyncio
    async def test_get_vocabulary_for_words(self, store: ReviewStore) -> None:
        gato, sol = await _add_words(store, "gato", "sol")
        await _add_words(store, "luna", user_id="someone-else")

        found = await store.get_vocabulary_for_words(USER, ["Gato", "sol ", "luna", "", "gato"])
        assert {word: v.id for word, v in found.items()} == {"gato": gato.id, "sol": sol.id}
        assert await store.get_vocabulary_for_words(USER, ["  "]) == {}


# --- Initializer ---


class TestInitializer:
    @pytest.mark.asyncio
    async def test_initialize_missing_is_idempotent(self, store: ReviewStore) -> None:
        await _add_words(store, "uno", "dos", "tres")
        assert await initialize_missing(store, USER) == 3
        assert await initialize_missing(store, USER) == 0
        assert await store.list_vocabulary_without_review(USER) == []

    @pytest.mark.asyncio
    async def test_initialize_only_touches_missing(self, store: ReviewStore) -> None:
        first, second = await _add_words(store, "sol", "luna")
        await ensure_review(store, first.id)
        await store.commit()
        assert await initialize_missing(store, USER) == 1

    @pytest.mark.asyncio
    async def test_initialize_scoped_to_user(self, store: ReviewStore) -> None:
        await _add_words(store, "agua")
        await _add_words(store, "fuego", user_id="other")
        assert await initialize_missing(store, USER) == 1
        assert await initialize_missing(store, "other") == 1

    @pytest.mark.asyncio
    async def test_initialized_state_is_due_now(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "rojo")
        await initialize_missing(store, USER)
        state = await store.load_review_state(vocab.id)
        assert state == ReviewState(interval_days=0, ease_factor=2.5, repetitions=0)
        assert await due_count(store, USER, utcnow()) == 1


# --- Due words ---


class TestDueWords:
    @pytest.mark.asyncio
    async def test_due_words_orders_and_limits(self, store: ReviewStore) -> None:
        now = utcnow()
        a, b, c, d = await _add_words(store, "a", "b", "c", "d")
        for vocab in (a, b, c):
            await ensure_review(store, vocab.id)
        await store.save_review_state(
            a.id, ReviewState(next_review_date=now - timedelta(days=1), review_count=1), 0
        )
        await store.save_review_state(
            b.id, ReviewState(next_review_date=now + timedelta(days=3), review_count=1), 0
        )
        await store.commit()

        words = await due_words(store, USER, now)
        # c has a null date, d has no review row: both unscheduled, ordered by id
        assert [w.vocabulary.word for w in words] == ["c", "d", "a"]
        assert words[1].review is None

        limited = await due_words(store, USER, now, limit=2)
        assert [w.vocabulary.word for w in limited] == ["c", "d"]
        assert await due_count(store, USER, now) == 3

    @pytest.mark.asyncio
    async def test_due_words_rejects_bad_limit(self, store: ReviewStore) -> None:
        with pytest.raises(InvalidLimit):
            await due_words(store, USER, utcnow(), limit=0)


# --- Review service ---


class TestSubmitReview:
    @pytest.mark.asyncio
    async def test_submit_persists_and_logs(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "verde")
        reviewed_at = datetime(2024, 3, 1, 12, 0)

        outcome = await submit_review(
            store, USER, vocab.id, Rating.GOOD, reviewed_at=reviewed_at, time_ms=1500
        )
        assert outcome.previous == new_review_state()
        assert outcome.state.interval_days == 1
        assert outcome.state.review_count == 1
        assert outcome.state.next_review_date == reviewed_at + timedelta(days=1)

        stored = await store.load_review_state(vocab.id)
        assert stored == outcome.state

        logs = (await store.session.execute(select(ReviewLog))).scalars().all()
        assert len(logs) == 1
        assert logs[0].rating == 3
        assert logs[0].time_ms == 1500
        assert logs[0].interval_after == 1

    @pytest.mark.asyncio
    async def test_sequence_of_reviews(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "azul")
        day = datetime(2024, 3, 1)
        intervals = []
        for offset, rating in ((0, "good"), (1, "good"), (7, "good"), (22, "again")):
            outcome = await submit_review(
                store, USER, vocab.id, rating, reviewed_at=day + timedelta(days=offset)
            )
            intervals.append(outcome.state.interval_days)
        assert intervals == [1, 6, 15, 1]
        state = await store.load_review_state(vocab.id)
        assert state.review_count == 4
        assert state.repetitions == 0
        assert state.ease_factor == pytest.approx(2.3)

    @pytest.mark.asyncio
    async def test_invalid_rating_writes_nothing(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "blanco")
        with pytest.raises(InvalidRating):
            await submit_review(store, USER, vocab.id, 2)
        assert await store.load_review_state(vocab.id) is None

    @pytest.mark.asyncio
    async def test_unknown_vocabulary(self, store: ReviewStore) -> None:
        with pytest.raises(NotFound):
            await submit_review(store, USER, 4242, Rating.GOOD)

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back(self) -> None:
        store = AsyncMock(spec=ReviewStore)
        store.load_review_state.return_value = new_review_state()
        store.save_review_state.side_effect = StorageFailure("write failed")

        with pytest.raises(StorageFailure):
            await submit_review(store, USER, 1, Rating.EASY)
        store.rollback.assert_awaited_once()
        store.commit.assert_not_awaited()
        store.add_review_log.assert_not_awaited()


# --- Capabilities ---


class TestCapabilities:
    @pytest.mark.asyncio
    async def test_free_user_daily_limit(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "negro")
        checker = PlanCapabilities(store, premium_user_ids=[], daily_review_limit=1)

        decision = await checker.can_perform_action(USER, Action.SUBMIT_REVIEW)
        assert decision.allowed
        assert decision.remaining_today == 1

        await submit_review(store, USER, vocab.id, Rating.GOOD)
        decision = await checker.can_perform_action(USER, Action.SUBMIT_REVIEW)
        assert not decision.allowed
        assert "daily limit of 1" in decision.reason
        with pytest.raises(CapabilityDenied):
            await require(checker, USER, Action.SUBMIT_REVIEW)

    @pytest.mark.asyncio
    async def test_premium_user_unlimited(self, store: ReviewStore) -> None:
        checker = PlanCapabilities(store, premium_user_ids=[USER], daily_review_limit=0)
        decision = await checker.can_perform_action(USER, Action.SUBMIT_REVIEW)
        assert decision.allowed
        assert decision.remaining_today is None

    @pytest.mark.asyncio
    async def test_log_count(self, store: ReviewStore) -> None:
        (vocab,) = await _add_words(store, "gris")
        await submit_review(store, USER, vocab.id, Rating.HARD)
        await submit_review(store, USER, vocab.id, Rating.EASY)
        total = (await store.session.execute(select(func.count(ReviewLog.id)))).scalar()
        assert total == 2
        assert await store.count_reviews_since(USER, utcnow() - timedelta(days=1)) == 2
