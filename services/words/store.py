"""
Word Store

Persistence for words, metadata, reviews, the review log and daily stats.

The store never commits on its own. Services group their writes with
``async with store.transaction():`` so each logical operation lands
atomically or not at all.

Usage:
    from services.words.store import WordStore

    store = WordStore(db)
    async with store.transaction():
        word, created = await store.upsert_word(owner_id, "apple")
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import DailyStat, Review, ReviewLog, Word, WordMetadata
from utils.logging import get_logger

logger = get_logger(__name__)


class WordStore:
    """Async repository over one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Commit on success, roll back and re-raise on error."""
        try:
            yield self.session
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # =========================================================================
    # Words
    # =========================================================================

    async def get_word(self, word_id: int, owner_id: Optional[int] = None) -> Optional[Word]:
        """Fetch a word, optionally requiring a specific owner."""
        query = select(Word).where(Word.id == word_id)
        if owner_id is not None:
            query = query.where(Word.owner_id == owner_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_word(self, owner_id: int, lemma: str) -> Optional[Word]:
        result = await self.session.execute(
            select(Word).where(Word.owner_id == owner_id, Word.lemma == lemma)
        )
        return result.scalar_one_or_none()

    async def upsert_word(
        self,
        owner_id: int,
        lemma: str,
        image_path: Optional[str] = None,
    ) -> Tuple[Word, bool]:
        """
        Return the owner's word for ``lemma``, creating it if needed.

        An existing word without an image picks up ``image_path``. If a
        concurrent insert wins the unique constraint, the winner is returned.
        Must be the first write of its transaction, since losing the race
        rolls the transaction back.

        Returns:
            (word, created)
        """
        existing = await self.find_word(owner_id, lemma)
        if existing is not None:
            if image_path and not existing.image_path:
                existing.image_path = image_path
                await self.session.flush()
            return existing, False

        word = Word(owner_id=owner_id, lemma=lemma, image_path=image_path)
        self.session.add(word)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            existing = await self.find_word(owner_id, lemma)
            if existing is None:
                raise
            logger.debug(f"Lost insert race for '{lemma}', reusing word {existing.id}")
            return existing, False

        return word, True

    async def list_words(self, owner_id: int, limit: int) -> List[Tuple[Word, Optional[WordMetadata]]]:
        """Newest words first, each with its metadata."""
        result = await self.session.execute(
            select(Word, WordMetadata)
            .outerjoin(WordMetadata, WordMetadata.word_id == Word.id)
            .where(Word.owner_id == owner_id)
            .order_by(Word.created_at.desc(), Word.id.desc())
            .limit(limit)
        )
        return [(word, metadata) for word, metadata in result.all()]

    # =========================================================================
    # Metadata
    # =========================================================================

    async def get_metadata(self, word_id: int) -> Optional[WordMetadata]:
        result = await self.session.execute(
            select(WordMetadata).where(WordMetadata.word_id == word_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_metadata(self, word_id: int) -> WordMetadata:
        metadata = await self.get_metadata(word_id)
        if metadata is None:
            metadata = WordMetadata(word_id=word_id)
            self.session.add(metadata)
            await self.session.flush()
        return metadata

    # =========================================================================
    # Reviews
    # =========================================================================

    async def get_review_for_word(self, word_id: int) -> Optional[Review]:
        result = await self.session.execute(select(Review).where(Review.word_id == word_id))
        return result.scalar_one_or_none()

    async def add_review(
        self,
        word_id: int,
        scheduled_at: datetime,
        interval_minutes: int,
        easiness: float,
        next_due_at: datetime,
    ) -> Review:
        review = Review(
            word_id=word_id,
            scheduled_at=scheduled_at,
            interval_minutes=interval_minutes,
            easiness=easiness,
            next_due_at=next_due_at,
        )
        self.session.add(review)
        await self.session.flush()
        return review

    async def get_owned_review(self, review_id: int, owner_id: int) -> Optional[Tuple[Review, Word]]:
        """The review and its word, or None if absent or owned by someone else."""
        result = await self.session.execute(
            select(Review, Word)
            .join(Word, Word.id == Review.word_id)
            .where(Review.id == review_id, Word.owner_id == owner_id)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def due_reviews(
        self,
        owner_id: int,
        now: datetime,
        limit: int,
    ) -> List[Tuple[Review, Word, Optional[WordMetadata]]]:
        """Reviews due at ``now`` (or never scheduled), earliest first."""
        result = await self.session.execute(
            select(Review, Word, WordMetadata)
            .join(Word, Word.id == Review.word_id)
            .outerjoin(WordMetadata, WordMetadata.word_id == Word.id)
            .where(Word.owner_id == owner_id)
            .where((Review.next_due_at.is_(None)) | (Review.next_due_at <= now))
            .order_by(Review.next_due_at.asc().nulls_first(), Review.id.asc())
            .limit(limit)
        )
        return [(review, word, metadata) for review, word, metadata in result.all()]

    async def add_review_log(
        self,
        review: Review,
        outcome: str,
        reviewed_at: datetime,
    ) -> ReviewLog:
        entry = ReviewLog(
            word_id=review.word_id,
            review_id=review.id,
            outcome=outcome,
            easiness=review.easiness,
            interval_minutes=review.interval_minutes,
            reviewed_at=reviewed_at,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def review_history(self, review_id: int) -> List[ReviewLog]:
        result = await self.session.execute(
            select(ReviewLog).where(ReviewLog.review_id == review_id).order_by(ReviewLog.id.asc())
        )
        return list(result.scalars().all())

    # =========================================================================
    # Daily stats
    # =========================================================================

    async def increment_daily_stat(
        self,
        owner_id: int,
        day: date,
        new_words: int = 0,
        reviews_completed: int = 0,
    ) -> None:
        """Add to the owner's counters for ``day``, creating the row if needed."""
        dialect = self.session.get_bind().dialect.name

        if dialect in ("sqlite", "postgresql"):
            insert = sqlite_insert if dialect == "sqlite" else pg_insert
            statement = insert(DailyStat).values(
                owner_id=owner_id,
                day=day,
                new_words=new_words,
                reviews_completed=reviews_completed,
            )
            statement = statement.on_conflict_do_update(
                index_elements=[DailyStat.owner_id, DailyStat.day],
                set_={
                    "new_words": DailyStat.new_words + statement.excluded.new_words,
                    "reviews_completed": DailyStat.reviews_completed + statement.excluded.reviews_completed,
                },
            )
            await self.session.execute(statement)
            return

        result = await self.session.execute(
            select(DailyStat).where(DailyStat.owner_id == owner_id, DailyStat.day == day)
        )
        stat = result.scalar_one_or_none()
        if stat is None:
            stat = DailyStat(owner_id=owner_id, day=day, new_words=0, reviews_completed=0)
            self.session.add(stat)
        stat.new_words += new_words
        stat.reviews_completed += reviews_completed
        await self.session.flush()

    async def daily_stats(self, owner_id: int, start: date, end: date) -> List[DailyStat]:
        result = await self.session.execute(
            select(DailyStat)
            .where(DailyStat.owner_id == owner_id, DailyStat.day >= start, DailyStat.day <= end)
            .order_by(DailyStat.day.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
