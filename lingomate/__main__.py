"""CLI interface for LingoMate vocabulary reviews.

Usage:
    python -m lingomate add "hola" "hello"        Add a word
    python -m lingomate init-reviews              Backfill review entries
    python -m lingomate due [--limit N]           List words due for review
    python -m lingomate count                     Show how many words are due
    python -m lingomate review "hola" good        Record a review
"""

import argparse
import asyncio
import logging
import sys

from lingomate.config import settings, utcnow
from lingomate.database import async_session, engine
from lingomate.models import Base
from lingomate.srs.due import due_count, due_words
from lingomate.srs.errors import ReviewError
from lingomate.srs.initializer import ensure_review, initialize_missing
from lingomate.srs.review import submit_review
from lingomate.srs.store import ReviewStore


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a word and schedule it for review."""
    await ensure_db()
    async with async_session() as db:
        store = ReviewStore(db)
        vocab, created = await store.upsert_vocabulary(
            args.user, args.word, args.comprehension, translation=args.translation,
            language=args.language,
        )
        if created:
            await ensure_review(store, vocab.id)
        await store.commit()
    print(f"  {'Added' if created else 'Updated'}: {vocab.word} = {vocab.translation}")


async def cmd_init_reviews(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        count = await initialize_missing(ReviewStore(db), args.user)
    print(f"  Initialized {count} review entries")


async def cmd_due(args: argparse.Namespace) -> None:
    """List the words due for review."""
    await ensure_db()
    now = utcnow()
    async with async_session() as db:
        words = await due_words(ReviewStore(db), args.user, now, args.limit)

    if not words:
        print("\n  No words due for review. You're all caught up!")
        return

    print(f"\n  {len(words)} words due\n")
    for w in words:
        if w.review is None or w.review.next_review_date is None:
            status = "new"
        else:
            status = f"due {w.review.next_review_date:%Y-%m-%d}, interval {w.review.interval_days}d"
        print(f"  {w.vocabulary.word:<24} {w.vocabulary.translation:<24} {status}")


async def cmd_count(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        count = await due_count(ReviewStore(db), args.user, utcnow())
    print(f"  {count} words due")


async def cmd_review(args: argparse.Namespace) -> None:
    """Record a review of a word by its spelling."""
    await ensure_db()
    async with async_session() as db:
        store = ReviewStore(db)
        vocab = await store.get_vocabulary_by_word(args.user, args.word)
        outcome = await submit_review(store, args.user, vocab.id, args.rating, time_ms=None)

    state = outcome.state
    rating = outcome.rating.name.lower()
    print(
        f"  {vocab.word}: {rating} -> next review in {state.interval_days} days "
        f"({state.next_review_date:%Y-%m-%d}), ease {state.ease_factor:.2f}"
    )


def main() -> None:
    """Entry point for the LingoMate CLI."""
    parser = argparse.ArgumentParser(
        prog="lingomate",
        description="LingoMate vocabulary review scheduler",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-u", "--user", default=settings.default_user_id, help="User ID")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # add
    add_parser = subparsers.add_parser("add", help="Add a word")
    add_parser.add_argument("word", help="Word in the target language")
    add_parser.add_argument("translation", help="Translation")
    add_parser.add_argument("-l", "--language", default=None, help="Language code")
    add_parser.add_argument(
        "-c", "--comprehension", type=int, default=1, choices=range(1, 6), help="Comprehension 1-5"
    )

    # init-reviews
    subparsers.add_parser("init-reviews", help="Create review entries for unscheduled words")

    # due
    due_parser = subparsers.add_parser("due", help="List words due for review")
    due_parser.add_argument("--limit", default=None, help="Maximum number of words")

    # count
    subparsers.add_parser("count", help="Show how many words are due")

    # review
    review_parser = subparsers.add_parser("review", help="Record a review")
    review_parser.add_argument("word", help="The reviewed word")
    review_parser.add_argument("rating", help="again, hard, good or easy")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "add": cmd_add,
        "init-reviews": cmd_init_reviews,
        "due": cmd_due,
        "count": cmd_count,
        "review": cmd_review,
    }

    try:
        asyncio.run(cmd_map[args.command](args))
    except ReviewError as e:
        print(f"  Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
