"""
Stats Router

Daily activity counters.
"""

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.dependencies import get_owner_id, get_stats_aggregator
from core.models import utcnow
from core.schemas import DailyStatView
from services.review.stats import StatsAggregator

router = APIRouter(prefix="/api/stats", tags=["Stats"])

DEFAULT_RANGE_DAYS = 7


@router.get("/daily", response_model=List[DailyStatView])
async def daily_stats(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    owner_id: int = Depends(get_owner_id),
    aggregator: StatsAggregator = Depends(get_stats_aggregator),
):
    """Per-day counters; defaults to the last seven days. Days without activity are omitted."""
    end = end or utcnow().date()
    start = start or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    return await aggregator.summarize(owner_id, start, end)
