"""Centralized constants for lexicard.

These values are part of the scheduling contract: clients that share a
database with this package rely on them matching exactly.
"""

# ---------- SM-2 ----------
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
PASSING_QUALITY = 3

# Swipe response -> recall quality
QUALITY_MAPPING = {
    "know": 4,  # swipe right
    "dontKnow": 1,  # swipe left
}

# Swipe direction -> recall quality recorded in CARD_REVIEWED events
DIRECTION_QUALITY = {
    "right": 4,
    "left": 1,
    "up": 0,  # peek, not a review
}

# ---------- Depth levels ----------
MIN_DEPTH_LEVEL = 1
MAX_DEPTH_LEVEL = 4

# ---------- Review queue ----------
MAX_NEW_CARDS_PER_DAY = 15
MAX_DAILY_QUEUE = 75
BURNOUT_WARNING_THRESHOLD = 80
SECONDS_PER_CARD = 8

# ---------- First session ----------
FIRST_SESSION_CARD_COUNT = 5

# ---------- Learning session ----------
UNDO_WINDOW_SECONDS = 3.0
