"""
Review Ratings

The three answer buckets and the labels that map onto them. Anything not
in ``RATING_SYNONYMS`` is rejected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from config.constants import (
    FAMILIAR_FLOOR_MINUTES,
    SIMPLE_FLOOR_MINUTES,
    UNFAMILIAR_FLOOR_MINUTES,
)
from utils.exceptions import UnsupportedRatingError


class Rating(str, Enum):
    FAMILIAR = "familiar"
    SIMPLE = "simple"
    UNFAMILIAR = "unfamiliar"


@dataclass(frozen=True)
class RatingPolicy:
    """How an answer moves easiness and the interval."""
    ease_delta: float
    multiplier: Optional[float]  # None resets the interval to the floor
    floor_minutes: int


RATING_POLICIES: Dict[Rating, RatingPolicy] = {
    Rating.FAMILIAR: RatingPolicy(ease_delta=0.15, multiplier=2.2, floor_minutes=FAMILIAR_FLOOR_MINUTES),
    Rating.SIMPLE: RatingPolicy(ease_delta=0.05, multiplier=1.4, floor_minutes=SIMPLE_FLOOR_MINUTES),
    Rating.UNFAMILIAR: RatingPolicy(ease_delta=-0.30, multiplier=None, floor_minutes=UNFAMILIAR_FLOOR_MINUTES),
}

RATING_SYNONYMS: Dict[str, Rating] = {
    # familiar
    "familiar": Rating.FAMILIAR,
    "easy": Rating.FAMILIAR,
    "熟悉": Rating.FAMILIAR,
    # simple
    "simple": Rating.SIMPLE,
    "good": Rating.SIMPLE,
    "ok": Rating.SIMPLE,
    "normal": Rating.SIMPLE,
    "简单": Rating.SIMPLE,
    # unfamiliar
    "unfamiliar": Rating.UNFAMILIAR,
    "again": Rating.UNFAMILIAR,
    "hard": Rating.UNFAMILIAR,
    "fail": Rating.UNFAMILIAR,
    "生词": Rating.UNFAMILIAR,
}


def parse_rating(label: Union[str, Rating, None]) -> Rating:
    """
    Map a caller-supplied label to its bucket.

    Raises:
        UnsupportedRatingError: For empty or unknown labels
    """
    if isinstance(label, Rating):
        return label

    normalized = (label or "").strip().lower()
    if not normalized:
        raise UnsupportedRatingError(None)

    try:
        return RATING_SYNONYMS[normalized]
    except KeyError:
        raise UnsupportedRatingError(label) from None
