"""Helpers shared by the CLI and the HTTP server."""

from dataclasses import asdict
from typing import Any

import typer

from lexicard.application.config import AppConfig, resolve_config
from lexicard.application.factory import Services, build_services
from lexicard.domain.models import (
    Card,
    QueueResult,
    ScheduleSnapshot,
    format_timestamp,
    parse_timestamp,
)


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config with CLI overrides; None values are ignored."""
    return resolve_config(overrides)


def services_from_ctx(ctx: typer.Context) -> Services:
    obj = ctx.ensure_object(dict)
    config = _resolve_with_overrides(database_url=obj.get("database_url"))
    return build_services(config)


def card_to_dict(card: Card) -> dict[str, Any]:
    data = asdict(card)
    data["topic_tags"] = list(card.topic_tags)
    return data


def queue_to_dict(result: QueueResult) -> dict[str, Any]:
    return {
        "cards": [card_to_dict(card) for card in result.cards],
        "due_count": result.due_count,
        "new_count": result.new_count,
        "estimated_minutes": result.estimated_minutes,
        "total_due": result.total_due,
        "burnout_warning": result.burnout_warning,
        "error": result.error,
    }


def snapshot_to_dict(snapshot: ScheduleSnapshot) -> dict[str, Any]:
    data = asdict(snapshot)
    data["next_review_at"] = format_timestamp(snapshot.next_review_at)
    return data


def snapshot_from_dict(data: dict[str, Any]) -> ScheduleSnapshot:
    """Inverse of snapshot_to_dict. Raises KeyError or ValueError on bad input."""
    return ScheduleSnapshot(
        interval=int(data["interval"]),
        ease_factor=float(data["ease_factor"]),
        next_review_at=parse_timestamp(data["next_review_at"]),
        review_count=int(data["review_count"]),
        accuracy=float(data["accuracy"]),
        depth_level=int(data["depth_level"]),
    )
