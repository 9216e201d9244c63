"""
Core Module

Provides database, models, and schemas for the application.
"""

from .database import Base, engine, get_db, check_database_health
from .models import Word, WordMetadata, Review, ReviewLog, DailyStat, utcnow
from .schemas import (
    WordView,
    ImportPreview,
    CandidateView,
    GlossView,
    DueReviewView,
    ReviewOutcomeView,
    DailyStatView,
    HealthResponse,
)

__all__ = [
    # Database
    "Base",
    "engine",
    "get_db",
    "check_database_health",
    # Models
    "Word",
    "WordMetadata",
    "Review",
    "ReviewLog",
    "DailyStat",
    "utcnow",
    # Schemas
    "WordView",
    "ImportPreview",
    "CandidateView",
    "GlossView",
    "DueReviewView",
    "ReviewOutcomeView",
    "DailyStatView",
    "HealthResponse",
]
