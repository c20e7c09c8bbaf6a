"""
SM-2 scheduling engine.

Pure computation with no I/O: the only outside input is "now", which callers
inject so interval math is deterministic under test.

Reference: https://www.supermemo.com/en/archives1990-2015/english/ol/sm2
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from lexicard.domain.constants import (
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    PASSING_QUALITY,
    QUALITY_MAPPING,
)
from lexicard.domain.ports import utc_now


@dataclass(frozen=True)
class SM2Result:
    """
    Attributes:
        next_interval: Days until the next review.
        next_ease_factor: Updated ease factor, within [1.3, 2.5].
        next_review_date: Absolute UTC due timestamp (never a duration).
    """

    next_interval: int
    next_ease_factor: float
    next_review_date: datetime


def quality_for_response(response: str) -> int:
    """Map a swipe response ("know" / "dontKnow") to a recall quality."""
    try:
        return QUALITY_MAPPING[response]
    except KeyError:
        raise ValueError(f"Unknown review response: {response!r}") from None


def calculate_next_review(
    quality: int,
    previous_interval: int,
    ease_factor: float,
    review_count: int,
    now: datetime | None = None,
) -> SM2Result:
    """
    Compute the next interval, ease factor and due date for one review.

    Args:
        quality: Recall quality, conventionally 0-5.
        previous_interval: Interval in days before this review.
        ease_factor: Ease factor before this review.
        review_count: Number of reviews before this one.
        now: Reference time; defaults to the current UTC time.

    Returns:
        SM2Result with the new schedule values.
    """
    if quality < PASSING_QUALITY:
        next_interval = 1
        next_ease = max(MIN_EASE_FACTOR, ease_factor - 0.2)
    else:
        if review_count == 0:
            next_interval = 1
        elif review_count == 1:
            next_interval = 6
        else:
            next_interval = _round_half_up(previous_interval * ease_factor)

        miss = 5 - quality
        next_ease = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
        next_ease = min(MAX_EASE_FACTOR, max(MIN_EASE_FACTOR, next_ease))

    reference = now if now is not None else utc_now()
    return SM2Result(
        next_interval=next_interval,
        next_ease_factor=next_ease,
        next_review_date=reference + timedelta(days=next_interval),
    )


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; intervals round .5 up
    return int(math.floor(value + 0.5))
