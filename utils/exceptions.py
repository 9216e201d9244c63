"""
Custom Exceptions Module

Defines application-specific exceptions for clearer error handling.
All exceptions inherit from a base SnapVocabError for easy catching.

Usage:
    from utils.exceptions import NotFoundError, ValidationError

    try:
        await coordinator.confirm_import(upload_id, owner_id, lemmas)
    except NotFoundError as e:
        logger.warning(f"Confirm failed: {e}")
"""

from typing import Optional, Dict, Any


class SnapVocabError(Exception):
    """
    Base exception for all SnapVocab application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (optional)
        status_code: HTTP status code to return (optional)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# =============================================================================
# Input Exceptions
# =============================================================================

class ValidationError(SnapVocabError):
    """
    Raised when caller input cannot be processed.

    Common causes:
        - No words left after normalization
        - Empty or oversized image upload
        - Confirm selection matching no pending candidate
        - Inverted date range
    """

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"field": field, **(details or {})},
            status_code=422
        )


class UnsupportedRatingError(SnapVocabError):
    """Raised when a review answer carries an unknown rating label."""

    def __init__(
        self,
        rating: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        message = f"Unsupported rating: {rating}" if rating else "Rating is required"
        super().__init__(
            message=message,
            details={"rating": rating, **(details or {})},
            status_code=400
        )


# =============================================================================
# Lookup Exceptions
# =============================================================================

class NotFoundError(SnapVocabError):
    """
    Raised when a resource is absent or belongs to another user.

    Both cases produce the same error so callers cannot probe for
    other users' ids.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"resource": resource, **(details or {})},
            status_code=404
        )


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class ExtractionEmptyError(SnapVocabError):
    """Raised when OCR returns no usable word candidate."""

    def __init__(
        self,
        message: str = "No words detected in the image",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details=details,
            status_code=422
        )


class MetadataMissingError(SnapVocabError):
    """
    Raised when a translation is requested before English metadata exists.

    The Chinese supplement is translated from the English definition and
    example, so it cannot be produced without them.
    """

    def __init__(
        self,
        word_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message="English metadata must exist before translation",
            details={"word_id": word_id, **(details or {})},
            status_code=409
        )


# =============================================================================
# External Service Exceptions
# =============================================================================

class ProviderError(SnapVocabError):
    """
    Raised inside provider adapters when an external call fails.

    Adapters convert it to their offline fallback; it does not reach callers
    of the enrichment service.
    """

    def __init__(
        self,
        message: str = "External provider error",
        service: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"service": service, **(details or {})},
            status_code=502
        )
