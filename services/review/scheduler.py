"""
Scheduling Engine

Spaced-repetition scheduling for words.

A new word gets a review due 10 minutes after creation. Each answer moves
the interval and easiness according to its rating bucket:

    familiar    easiness +0.15, interval x2.2, at least one day
    simple      easiness +0.05, interval x1.4, at least 12 hours
    unfamiliar  easiness -0.30, interval back to 10 minutes

Easiness always stays within [1.3, 2.8]. Every answer is logged and counted
in the owner's daily stats within the same transaction as the review update.

Usage:
    from services.review.scheduler import SchedulingEngine

    engine = SchedulingEngine(store, enrichment)
    due = await engine.fetch_due(owner_id, limit=20)
    outcome = await engine.submit_answer(owner_id, due[0].review_id, "easy")
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, TYPE_CHECKING, Union

from config.constants import (
    INITIAL_EASINESS,
    INITIAL_INTERVAL_MINUTES,
    MAX_EASINESS,
    MIN_EASINESS,
)
from core.models import Review, Word, utcnow
from core.schemas import DueReviewView, GlossView, ReviewOutcomeView
from services.review.ratings import RATING_POLICIES, Rating, parse_rating
from services.words.store import WordStore
from utils.exceptions import MetadataMissingError, NotFoundError
from utils.logging import get_logger

if TYPE_CHECKING:
    from services.words.enrichment import EnrichmentService

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScheduleStep:
    interval_minutes: int
    easiness: float


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_easiness(value: float) -> float:
    return max(MIN_EASINESS, min(MAX_EASINESS, value))


def compute_next(prev_interval: Optional[int], easiness: float, rating: Rating) -> ScheduleStep:
    """
    Next interval and easiness after an answer.

    Args:
        prev_interval: Current interval in minutes (missing or 0 counts as 10)
        easiness: Current easiness factor
        rating: Answer bucket
    """
    policy = RATING_POLICIES[rating]
    new_easiness = clamp_easiness(easiness + policy.ease_delta)

    if policy.multiplier is None:
        return ScheduleStep(interval_minutes=policy.floor_minutes, easiness=new_easiness)

    base = prev_interval if prev_interval and prev_interval > 0 else INITIAL_INTERVAL_MINUTES
    interval = max(policy.floor_minutes, round_half_up(base * policy.multiplier))
    return ScheduleStep(interval_minutes=interval, easiness=new_easiness)


class SchedulingEngine:
    """
    Creates, serves and advances reviews.

    Attributes:
        store: Word persistence for the current request
        enrichment: Used to fetch the Chinese supplement after a miss
    """

    def __init__(self, store: WordStore, enrichment: Optional["EnrichmentService"] = None):
        self.store = store
        self.enrichment = enrichment

    async def schedule_initial(self, word: Word, now: Optional[datetime] = None) -> Review:
        """
        Give a word its first review. Idempotent.

        Counts the word in the owner's new-word total for its creation day
        when the review is created.
        """
        existing = await self.store.get_review_for_word(word.id)
        if existing is not None:
            return existing

        now = now or utcnow()
        async with self.store.transaction():
            review = await self.store.add_review(
                word_id=word.id,
                scheduled_at=now,
                interval_minutes=INITIAL_INTERVAL_MINUTES,
                easiness=INITIAL_EASINESS,
                next_due_at=now + timedelta(minutes=INITIAL_INTERVAL_MINUTES),
            )
            day = (word.created_at or now).date()
            await self.store.increment_daily_stat(word.owner_id, day, new_words=1)

        logger.info(f"Scheduled first review for '{word.lemma}' at {review.next_due_at}")
        return review

    async def fetch_due(
        self,
        owner_id: int,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> List[DueReviewView]:
        """Reviews due now, earliest first, capped at ``limit``."""
        rows = await self.store.due_reviews(owner_id, now or utcnow(), max(0, limit))
        return [
            DueReviewView(
                review_id=review.id,
                word_id=word.id,
                lemma=word.lemma,
                audio_url=word.audio_url,
                en_definition=metadata.en_definition if metadata else None,
                en_example=metadata.en_example if metadata else None,
                zh_definition=metadata.zh_definition if metadata else None,
                zh_example=metadata.zh_example if metadata else None,
                interval_minutes=review.interval_minutes,
                easiness=review.easiness,
                next_due_at=review.next_due_at,
            )
            for review, word, metadata in rows
        ]

    async def record_result(
        self,
        owner_id: int,
        review_id: int,
        rating: Union[str, Rating],
        now: Optional[datetime] = None,
    ) -> ReviewOutcomeView:
        """
        Apply an answer to a review.

        Raises:
            UnsupportedRatingError: If the rating label is unknown
            NotFoundError: If the review does not exist or belongs to someone else
        """
        bucket = parse_rating(rating)
        now = now or utcnow()

        async with self.store.transaction():
            row = await self.store.get_owned_review(review_id, owner_id)
            if row is None:
                raise NotFoundError("Review not found", resource="review", details={"review_id": review_id})
            review, word = row

            step = compute_next(review.interval_minutes, review.easiness, bucket)
            review.interval_minutes = step.interval_minutes
            review.easiness = step.easiness
            review.outcome = bucket.value
            review.reviewed_at = now
            review.next_due_at = now + timedelta(minutes=step.interval_minutes)

            await self.store.add_review_log(review, bucket.value, now)
            await self.store.increment_daily_stat(owner_id, now.date(), reviews_completed=1)

        logger.info(
            f"Review {review.id} ('{word.lemma}') answered {bucket.value}: "
            f"interval={step.interval_minutes}m easiness={step.easiness:.2f}"
        )
        return ReviewOutcomeView(
            review_id=review.id,
            word_id=word.id,
            outcome=bucket.value,
            interval_minutes=review.interval_minutes,
            easiness=review.easiness,
            reviewed_at=now,
            next_due_at=review.next_due_at,
        )

    async def submit_answer(
        self,
        owner_id: int,
        review_id: int,
        rating: Union[str, Rating],
        now: Optional[datetime] = None,
    ) -> ReviewOutcomeView:
        """Record an answer; after an unfamiliar answer, attach the Chinese supplement."""
        outcome = await self.record_result(owner_id, review_id, rating, now=now)

        if outcome.outcome != Rating.UNFAMILIAR.value or self.enrichment is None:
            return outcome

        word = await self.store.get_word(outcome.word_id, owner_id=owner_id)
        try:
            metadata = await self.enrichment.ensure_chinese_supplement(word)
        except MetadataMissingError:
            logger.info(f"No English metadata yet for word {outcome.word_id}, skipping supplement")
            return outcome

        outcome.supplement = GlossView(definition=metadata.zh_definition, example=metadata.zh_example)
        return outcome
