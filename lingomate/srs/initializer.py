"""Backfill review states for vocabulary that has none."""

import logging

from lingomate.srs.errors import StorageFailure
from lingomate.srs.sm2 import ReviewState, new_review_state
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)


async def initialize_missing(store: ReviewStore, user_id: str) -> int:
    """Create a default, immediately due review state for every unscheduled word.

    Each row is created if absent and committed per item, so an interrupted
    run can simply be repeated.

    Returns:
        The number of review states created.
    """
    missing = await store.list_vocabulary_without_review(user_id)
    created = 0
    for vocab in missing:
        if await store.create_review_state(vocab.id, new_review_state()):
            created += 1
        await store.commit()

    logger.info(
        "Initialized %d review entries for user %s (%d candidates)",
        created,
        user_id,
        len(missing),
    )
    return created


async def ensure_review(store: ReviewStore, vocabulary_id: int) -> ReviewState:
    """Return the word's review state, creating the default one if it has none."""
    state = await store.load_review_state(vocabulary_id)
    if state is not None:
        return state
    await store.create_review_state(vocabulary_id, new_review_state())
    state = await store.load_review_state(vocabulary_id)
    if state is None:
        raise StorageFailure(f"Review state for vocabulary {vocabulary_id} was not created")
    return state
