"""
Reviews Router

Serves due reviews and records answers.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from config.settings import settings
from core.dependencies import get_owner_id, get_scheduling_engine
from core.schemas import DueReviewView, ReviewAnswerRequest, ReviewOutcomeView
from services.review.scheduler import SchedulingEngine
from utils.rate_limit import limit_review

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("/today", response_model=List[DueReviewView])
async def due_reviews(
    limit: Optional[int] = Query(None, ge=1, le=200),
    owner_id: int = Depends(get_owner_id),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Words due for review now, earliest first."""
    return await engine.fetch_due(owner_id, limit or settings.DUE_REVIEW_LIMIT)


@router.post("/{review_id}/response", response_model=ReviewOutcomeView)
@limit_review
async def answer_review(
    request: Request,
    review_id: int,
    payload: ReviewAnswerRequest,
    owner_id: int = Depends(get_owner_id),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Record an answer.

    After an unfamiliar answer the response carries the Chinese definition
    and example as ``supplement``.
    """
    return await engine.submit_answer(owner_id, review_id, payload.rating)
