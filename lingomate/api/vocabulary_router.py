"""API routes for a learner's vocabulary list."""

import logging

from fastapi import APIRouter, Depends

from lingomate.api.dependencies import get_store, get_user_id
from lingomate.api.schemas import VocabularyCreate, VocabularyResponse
from lingomate.srs.initializer import ensure_review
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vocabulary", tags=["vocabulary"])


@router.get("", response_model=list[VocabularyResponse])
async def list_vocabulary(
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> list[VocabularyResponse]:
    """List the user's words, newest first."""
    return [VocabularyResponse.model_validate(v) for v in await store.list_vocabulary(user_id)]


@router.get("/lookup", response_model=VocabularyResponse)
async def lookup_vocabulary(
    word: str,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> VocabularyResponse:
    """Find one of the user's words by spelling, ignoring case and surrounding spaces."""
    return VocabularyResponse.model_validate(await store.get_vocabulary_by_word(user_id, word))


@router.post("", response_model=VocabularyResponse)
async def upsert_vocabulary(
    request: VocabularyCreate,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> VocabularyResponse:
    """Add a word, or update its comprehension if it is already in the list.

    New words get a review entry straight away so they show up as due.
    """
    vocab, created = await store.upsert_vocabulary(
        user_id,
        request.word,
        request.comprehension,
        translation=request.translation,
        language=request.language,
    )
    if created:
        await ensure_review(store, vocab.id)
        logger.info("Added vocabulary %d (%s) for user %s", vocab.id, vocab.word, user_id)
    await store.commit()
    return VocabularyResponse.model_validate(vocab)


@router.delete("/{vocabulary_id}")
async def delete_vocabulary(
    vocabulary_id: int,
    user_id: str = Depends(get_user_id),
    store: ReviewStore = Depends(get_store),
) -> dict:
    """Delete a word together with its review entry."""
    await store.delete_vocabulary(vocabulary_id, user_id)
    await store.commit()
    return {"status": "deleted", "id": vocabulary_id}
