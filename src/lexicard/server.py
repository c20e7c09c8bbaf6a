import logging
import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from lexicard.application.config import resolve_config
from lexicard.application.factory import Services, build_services
from lexicard.consts import VERSION
from lexicard.domain import errors
from lexicard.domain.models import Card, ScheduleSnapshot

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexicard.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"lexicard server v{VERSION} starting up...")
    yield
    # Shutdown
    services = getattr(app.state, "services", None)
    if services is not None:
        services.database.dispose()
    logger.info("lexicard server shutting down...")


app = FastAPI(
    title="lexicard",
    description="Spaced-repetition scheduling API for vocabulary flashcards.",
    version=VERSION,
    lifespan=lifespan,
)


_services_lock = threading.Lock()


def get_services(request: Request) -> Services:
    """Service graph for this app, built once on first use from the resolved config."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        with _services_lock:
            services = getattr(request.app.state, "services", None)
            if services is None:
                services = build_services(resolve_config())
                request.app.state.services = services
    return services


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardModel(BaseModel):
    id: int
    word: str
    definition: str
    part_of_speech: str
    difficulty_level: int
    topic_tags: list[str]
    ipa: str | None = None
    example_sentence: str | None = None
    audio_url_american: str | None = None
    audio_url_british: str | None = None
    image_url: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(
            id=card.id,
            word=card.word,
            definition=card.definition,
            part_of_speech=card.part_of_speech,
            difficulty_level=card.difficulty_level,
            topic_tags=list(card.topic_tags),
            ipa=card.ipa,
            example_sentence=card.example_sentence,
            audio_url_american=card.audio_url_american,
            audio_url_british=card.audio_url_british,
            image_url=card.image_url,
        )


class SnapshotModel(BaseModel):
    interval: int
    ease_factor: float
    next_review_at: datetime
    review_count: int
    accuracy: float
    depth_level: int

    @classmethod
    def from_snapshot(cls, snapshot: ScheduleSnapshot) -> "SnapshotModel":
        return cls(
            interval=snapshot.interval,
            ease_factor=snapshot.ease_factor,
            next_review_at=snapshot.next_review_at,
            review_count=snapshot.review_count,
            accuracy=snapshot.accuracy,
            depth_level=snapshot.depth_level,
        )

    def to_snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(
            interval=self.interval,
            ease_factor=self.ease_factor,
            next_review_at=self.next_review_at,
            review_count=self.review_count,
            accuracy=self.accuracy,
            depth_level=self.depth_level,
        )


class QueueResponse(BaseModel):
    cards: list[CardModel]
    due_count: int
    new_count: int
    estimated_minutes: int
    total_due: int
    burnout_warning: bool


class ReviewRequest(BaseModel):
    user_id: str
    card_id: int
    response: str  # know, dontKnow


class ReviewResponse(BaseModel):
    next_review_at: datetime
    is_first_review: bool
    previous_state: SnapshotModel | None = None


class RevertRequest(BaseModel):
    user_id: str
    card_id: int
    previous_state: SnapshotModel | None = None
    is_first_review: bool = False


class RevertResponse(BaseModel):
    success: bool
    exact: bool


class EventRequest(BaseModel):
    user_id: str
    card_id: int
    direction: str  # left, right, up


class EventResponse(BaseModel):
    success: bool
    event_id: int | None = None


class DepthResponse(BaseModel):
    card_id: int
    depth_level: int


class FirstSessionResponse(BaseModel):
    cards: list[CardModel]


# Error code -> HTTP status for failed operations
_STATUS_FOR_ERROR = {
    errors.INVALID_RESPONSE: 422,
    errors.INVALID_DIRECTION: 422,
    errors.NO_SCHEDULE_TO_REVERT: 409,
    errors.SNAPSHOT_REQUIRED: 409,
}


def _fail(error: str | None) -> HTTPException:
    return HTTPException(status_code=_STATUS_FOR_ERROR.get(error, 500), detail=error)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/users/{user_id}/queue", response_model=QueueResponse)
def get_queue(user_id: str, services: Services = Depends(get_services)):
    """Today's review queue: overdue cards first, then new cards."""
    result = services.queue_builder.fetch_sr_queue(user_id)
    if not result.success:
        raise _fail(result.error)
    return QueueResponse(
        cards=[CardModel.from_card(card) for card in result.cards],
        due_count=result.due_count,
        new_count=result.new_count,
        estimated_minutes=result.estimated_minutes,
        total_due=result.total_due,
        burnout_warning=result.burnout_warning,
    )


@app.post("/reviews", response_model=ReviewResponse)
def post_review(req: ReviewRequest, services: Services = Depends(get_services)):
    """Apply one review. The returned snapshot enables an exact undo."""
    result = services.store.adjust_schedule(req.card_id, req.user_id, req.response)
    if not result.success:
        raise _fail(result.error)
    return ReviewResponse(
        next_review_at=result.next_review_at,
        is_first_review=result.is_first_review,
        previous_state=(
            SnapshotModel.from_snapshot(result.previous_state) if result.previous_state else None
        ),
    )


@app.post("/reviews/revert", response_model=RevertResponse)
def revert_review(req: RevertRequest, services: Services = Depends(get_services)):
    """Undo the last review, exactly when a snapshot is supplied."""
    result = services.store.revert_schedule_adjustment(
        req.card_id,
        req.user_id,
        previous_state=req.previous_state.to_snapshot() if req.previous_state else None,
        is_first_review=req.is_first_review,
    )
    if not result.success:
        raise _fail(result.error)

    undo_event = services.store.log_undo_event(req.card_id, req.user_id)
    if not undo_event.success:
        logger.warning(f"Undo event not logged for card={req.card_id}: {undo_event.error}")
    return RevertResponse(success=True, exact=result.exact)


@app.post("/events", response_model=EventResponse)
def post_event(req: EventRequest, services: Services = Depends(get_services)):
    """Log a CARD_REVIEWED event for a swipe."""
    result = services.store.log_learning_event(req.card_id, req.user_id, req.direction)
    if not result.success:
        raise _fail(result.error)
    return EventResponse(success=True, event_id=result.event_id)


@app.get("/users/{user_id}/cards/{card_id}/depth", response_model=DepthResponse)
def get_depth(user_id: str, card_id: int, services: Services = Depends(get_services)):
    return DepthResponse(
        card_id=card_id, depth_level=services.store.get_card_depth_level(card_id, user_id)
    )


@app.get("/first-session", response_model=FirstSessionResponse)
def get_first_session(
    level: int = 0,
    goal: str | None = None,
    services: Services = Depends(get_services),
):
    """First-session words for a new learner. May return fewer than five."""
    cards = services.queue_builder.select_first_session_words(level, goal)
    return FirstSessionResponse(cards=[CardModel.from_card(card) for card in cards])
