"""
Utilities Module

Provides shared utilities across the application:
- Logging configuration
- Custom exceptions
- Rate limiting
"""

from .logging import get_logger, setup_logging, log_api_call, log_word_action
from .exceptions import (
    SnapVocabError,
    ValidationError,
    UnsupportedRatingError,
    NotFoundError,
    ExtractionEmptyError,
    MetadataMissingError,
    ProviderError,
)
from .rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    RATE_LIMITS,
    limit_ingest,
    limit_review,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "log_api_call",
    "log_word_action",
    # Exceptions
    "SnapVocabError",
    "ValidationError",
    "UnsupportedRatingError",
    "NotFoundError",
    "ExtractionEmptyError",
    "MetadataMissingError",
    "ProviderError",
    # Rate Limiting
    "limiter",
    "rate_limit_exceeded_handler",
    "RATE_LIMITS",
    "limit_ingest",
    "limit_review",
]
