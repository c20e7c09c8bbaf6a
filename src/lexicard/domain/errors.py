"""Error codes reported in result objects.

Public scheduling operations never raise across their boundary; they return a
result with ``success=False`` and one of these codes (or the underlying
exception message for storage failures).
"""

NO_SCHEDULE_TO_REVERT = "NO_SCHEDULE_TO_REVERT"
SNAPSHOT_REQUIRED = "SNAPSHOT_REQUIRED"
INVALID_RESPONSE = "INVALID_RESPONSE"
INVALID_DIRECTION = "INVALID_DIRECTION"

# Fallbacks used when a caught exception carries no message
SR_SCHEDULE_ADJUSTMENT_FAILED = "SR_SCHEDULE_ADJUSTMENT_FAILED"
SR_SCHEDULE_REVERT_FAILED = "SR_SCHEDULE_REVERT_FAILED"
EVENT_LOG_FAILED = "EVENT_LOG_FAILED"
SR_QUEUE_FETCH_FAILED = "SR_QUEUE_FETCH_FAILED"


def error_message(exc: BaseException, fallback: str) -> str:
    """Message for a caught exception, or ``fallback`` when it has none."""
    message = str(exc)
    return message if message else fallback
