# Domain Package
from .models import (
    Card,
    EventResult,
    EventType,
    LearningEvent,
    QueueResult,
    RevertResult,
    ScheduleRecord,
    ScheduleResult,
    ScheduleSnapshot,
)
from .ports import CardCatalog, Clock, EventLog, ScheduleRepository, UnitOfWork

__all__ = [
    "Card",
    "EventResult",
    "EventType",
    "LearningEvent",
    "QueueResult",
    "RevertResult",
    "ScheduleRecord",
    "ScheduleResult",
    "ScheduleSnapshot",
    "CardCatalog",
    "Clock",
    "EventLog",
    "ScheduleRepository",
    "UnitOfWork",
]
