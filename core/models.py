"""
Database Models Module

Defines SQLAlchemy ORM models for the application.
All models inherit from Base defined in database.py.

Models:
    - Word: A lemma in one user's deck
    - WordMetadata: English gloss, Chinese supplement and audio references
    - Review: Current spaced-repetition state of a word
    - ReviewLog: Append-only history of review answers
    - DailyStat: Per-user, per-day counters

Timestamps are naive UTC datetimes; see ``utcnow``.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Float, ForeignKey, Text, UniqueConstraint,
)

from .database import Base


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in every column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Word(Base):
    """
    A lemma in a user's deck.

    Created on the first sighting of a lemma for an owner and never deleted.
    Only the image and pronunciation audio references change afterwards.

    Attributes:
        id: Primary key
        owner_id: Owning user (resolved upstream)
        lemma: Lowercased, trimmed word; unique per owner
        image_path: Public path of the image the word was captured from
        audio_url: Public path of the pronunciation clip
        created_at: Creation timestamp
    """

    __tablename__ = "words"
    __table_args__ = (
        UniqueConstraint("owner_id", "lemma", name="uq_words_owner_lemma"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, index=True, nullable=False)
    lemma = Column(String(128), nullable=False)
    image_path = Column(String(512), nullable=True)
    audio_url = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Word(id={self.id}, owner_id={self.owner_id}, lemma='{self.lemma}')>"


class WordMetadata(Base):
    """
    Enrichment attached to a word.

    The English group (definition, example, their audio) and the Chinese
    group can each be refreshed without discarding the other.
    """

    __tablename__ = "word_metadata"

    id = Column(Integer, primary_key=True, index=True)
    word_id = Column(Integer, ForeignKey("words.id", ondelete="CASCADE"), unique=True, nullable=False)

    # English
    en_definition = Column(Text, nullable=True)
    en_example = Column(Text, nullable=True)
    en_definition_audio_url = Column(String(512), nullable=True)
    en_example_audio_url = Column(String(512), nullable=True)

    # Chinese
    zh_definition = Column(Text, nullable=True)
    zh_example = Column(Text, nullable=True)

    provider = Column(String(64), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def has_chinese(self) -> bool:
        return bool(self.zh_definition and self.zh_example)

    def __repr__(self) -> str:
        return f"<WordMetadata(word_id={self.word_id}, provider='{self.provider}')>"


class Review(Base):
    """
    Spaced-repetition state for one word.

    Attributes:
        scheduled_at: When the review was first scheduled
        reviewed_at: Time of the last answer
        outcome: Canonical rating of the last answer
        interval_minutes: Current interval
        easiness: Easiness factor, kept within [1.3, 2.8]
        next_due_at: When the word resurfaces; NULL means due now
    """

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    word_id = Column(Integer, ForeignKey("words.id", ondelete="CASCADE"), unique=True, nullable=False)
    scheduled_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    outcome = Column(String(16), nullable=True)
    interval_minutes = Column(Integer, nullable=False)
    easiness = Column(Float, nullable=False)
    next_due_at = Column(DateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, word_id={self.word_id}, "
            f"interval={self.interval_minutes}, due={self.next_due_at})>"
        )


class ReviewLog(Base):
    """One answered review. Rows are only ever appended."""

    __tablename__ = "review_log"

    id = Column(Integer, primary_key=True, index=True)
    word_id = Column(Integer, ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    outcome = Column(String(16), nullable=False)
    easiness = Column(Float, nullable=False)
    interval_minutes = Column(Integer, nullable=False)
    reviewed_at = Column(DateTime, default=utcnow, nullable=False)


class DailyStat(Base):
    """Per-user daily counters, incremented additively."""

    __tablename__ = "daily_stats"
    __table_args__ = (
        UniqueConstraint("owner_id", "day", name="uq_daily_stats_owner_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    day = Column(Date, nullable=False)
    new_words = Column(Integer, nullable=False, default=0)
    reviews_completed = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<DailyStat(owner_id={self.owner_id}, day={self.day})>"
