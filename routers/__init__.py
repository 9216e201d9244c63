"""
Routers Module

API routers for the SnapVocab application.
"""

from .words import router as words_router
from .reviews import router as reviews_router
from .stats import router as stats_router

__all__ = ["words_router", "reviews_router", "stats_router"]
