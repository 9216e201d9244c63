"""Daily activity summaries."""

from datetime import date
from typing import List

from core.schemas import DailyStatView
from services.words.store import WordStore
from utils.exceptions import ValidationError


class StatsAggregator:
    def __init__(self, store: WordStore):
        self.store = store

    async def summarize(self, owner_id: int, start: date, end: date) -> List[DailyStatView]:
        """
        Counters for each day in ``[start, end]`` that had activity, ascending.

        Days without a row are omitted; callers treat them as zero.
        """
        if start > end:
            raise ValidationError(
                "Start date must not be after end date",
                field="start",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        rows = await self.store.daily_stats(owner_id, start, end)
        return [
            DailyStatView(day=row.day, new_words=row.new_words, reviews_completed=row.reviews_completed)
            for row in rows
        ]
