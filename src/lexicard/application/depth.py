"""Mastery depth classification (1-4) from review statistics."""

from lexicard.domain.constants import MIN_DEPTH_LEVEL

# (level, min reviews, min ease, min accuracy), checked top-down
DEPTH_THRESHOLDS: tuple[tuple[int, int, float, float], ...] = (
    (4, 10, 2.3, 0.8),
    (3, 7, 2.2, 0.7),
    (2, 3, 2.0, 0.6),
)

DEPTH_LABELS = {
    1: "Recognition",
    2: "Association",
    3: "Production",
    4: "Application",
}


def calculate_depth_level(review_count: int, ease_factor: float, accuracy: float) -> int:
    """
    Classify a card's mastery depth.

    The first matching tier wins. Depth is recomputed from current stats, so
    a drop in accuracy or ease can lower a previously reached level.
    """
    for level, min_reviews, min_ease, min_accuracy in DEPTH_THRESHOLDS:
        if review_count >= min_reviews and ease_factor >= min_ease and accuracy >= min_accuracy:
            return level
    return MIN_DEPTH_LEVEL
