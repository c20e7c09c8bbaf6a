"""lexicard CLI: review queue, scheduling and configuration commands."""

import json
import logging
import sys
from typing import Annotated

import typer

from lexicard.application.config import resolve_config
from lexicard.domain.constants import QUALITY_MAPPING
from lexicard.domain.goals import GOAL_OPTIONS
from lexicard.domain.models import format_timestamp
from lexicard.interface._common import (
    card_to_dict,
    queue_to_dict,
    services_from_ctx,
    snapshot_from_dict,
    snapshot_to_dict,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexicard: Spaced-repetition vocabulary scheduler.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage lexicard configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="SQLAlchemy URL. Defaults to config."),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging.")
    ] = False,
):
    """Global settings for lexicard."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url
    config = resolve_config({"database_url": database_url})
    logging.getLogger().setLevel(logging.DEBUG if verbose else config.log_level)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db(ctx: typer.Context):
    """Create the database schema."""
    services = services_from_ctx(ctx)
    typer.secho(
        f"Database ready: {services.database.url} ({services.catalog.count()} cards)",
        fg="green",
    )


@app.command("queue")
def queue(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show today's review queue: overdue cards first, then new cards."""
    services = services_from_ctx(ctx)
    result = services.queue_builder.fetch_sr_queue(user_id)

    if json_output:
        typer.echo(json.dumps(queue_to_dict(result), indent=2))
        if not result.success:
            raise typer.Exit(1)
        return

    if not result.success:
        typer.secho(f"Failed to build queue: {result.error}", fg="red")
        raise typer.Exit(1)

    if not result.cards:
        typer.secho("Nothing to review. Come back later.", fg="green")
        return

    typer.echo(
        f"Due: {result.due_count}  New: {result.new_count}"
        f"  Total: {len(result.cards)}  (~{result.estimated_minutes} min)"
    )
    if result.burnout_warning:
        typer.secho(
            f"WARNING: {result.total_due} cards are due. Consider a lighter day.",
            fg="yellow",
        )
    for index, card in enumerate(result.cards, start=1):
        typer.echo(f"  [{index}] {card.word}  ({card.part_of_speech}, level {card.difficulty_level})")


@app.command("review")
def review(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    card_id: Annotated[int, typer.Argument(help="Card ID.")],
    response: Annotated[str, typer.Argument(help="know or dontKnow.")],
):
    """Record a review and print the next due date plus the undo snapshot."""
    if response not in QUALITY_MAPPING:
        typer.secho(f"Unknown response {response!r}; use know or dontKnow.", fg="red")
        raise typer.Exit(2)

    services = services_from_ctx(ctx)
    direction = "right" if response == "know" else "left"

    event = services.store.log_learning_event(card_id, user_id, direction)
    if not event.success:
        logger.warning(f"Event not logged: {event.error}")

    result = services.store.adjust_schedule(card_id, user_id, response)
    if not result.success:
        typer.secho(f"Review failed: {result.error}", fg="red")
        raise typer.Exit(1)

    typer.echo(
        json.dumps(
            {
                "next_review_at": format_timestamp(result.next_review_at),
                "is_first_review": result.is_first_review,
                "previous_state": (
                    snapshot_to_dict(result.previous_state) if result.previous_state else None
                ),
            },
            indent=2,
        )
    )


@app.command("revert")
def revert(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    card_id: Annotated[int, typer.Argument(help="Card ID.")],
    snapshot: Annotated[
        str | None,
        typer.Option("--snapshot", help="previous_state JSON printed by review, for an exact undo."),
    ] = None,
    first_review: Annotated[
        bool, typer.Option("--first-review", help="Undo a card's very first review.")
    ] = False,
):
    """Revert the last review of a card. Without --snapshot the revert is approximate."""
    previous_state = None
    if snapshot is not None:
        try:
            previous_state = snapshot_from_dict(json.loads(snapshot))
        except (ValueError, KeyError, TypeError) as e:
            typer.secho(f"Invalid snapshot: {e}", fg="red")
            raise typer.Exit(2) from None

    services = services_from_ctx(ctx)
    result = services.store.revert_schedule_adjustment(
        card_id, user_id, previous_state=previous_state, is_first_review=first_review
    )
    if not result.success:
        typer.secho(f"Revert failed: {result.error}", fg="red")
        raise typer.Exit(1)

    services.store.log_undo_event(card_id, user_id)
    if result.exact:
        typer.secho("Schedule reverted.", fg="green")
    else:
        typer.secho(
            "Schedule reverted approximately (ease factor and accuracy unchanged).",
            fg="yellow",
        )


@app.command("depth")
def depth(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    card_id: Annotated[int, typer.Argument(help="Card ID.")],
):
    """Print a card's mastery depth (0 = never reviewed, 1-4 otherwise)."""
    services = services_from_ctx(ctx)
    typer.echo(services.store.get_card_depth_level(card_id, user_id))


@app.command("first-session")
def first_session(
    ctx: typer.Context,
    level: Annotated[int, typer.Option(help="Learner level (card difficulty).")] = 0,
    goal: Annotated[
        str | None,
        typer.Option(help=f"Learning goal: {', '.join(g.id for g in GOAL_OPTIONS)}."),
    ] = None,
):
    """Pick the words for a new learner's first session."""
    services = services_from_ctx(ctx)
    cards = services.queue_builder.select_first_session_words(level, goal)
    if not cards:
        typer.secho("No words available for this level.", fg="yellow")
        return
    typer.echo(json.dumps([card_to_dict(card) for card in cards], indent=2))


@app.command("serve")
def serve(
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API server."""
    import uvicorn

    config = resolve_config({"host": host, "port": port})
    uvicorn.run("lexicard.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(), indent=2))
