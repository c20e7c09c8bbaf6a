"""Learning goals and user levels chosen during onboarding."""

from dataclasses import dataclass
from enum import IntEnum


class UserLevel(IntEnum):
    """Placement level; doubles as the card difficulty level a learner starts at."""

    BEGINNER = 0
    PRE_INTERMEDIATE = 1
    INTERMEDIATE = 2
    UPPER_INTERMEDIATE = 3


@dataclass(frozen=True)
class LearningGoal:
    id: str
    label: str
    description: str

    @property
    def topic_tag(self) -> str:
        # Card topic tags use the goal id verbatim
        return self.id


GOAL_OPTIONS: tuple[LearningGoal, ...] = (
    LearningGoal("ielts", "IELTS", "Exam preparation"),
    LearningGoal("business", "Business", "Workplace English"),
    LearningGoal("travel", "Travel", "Getting around abroad"),
    LearningGoal("reading", "Reading", "Reading books in English"),
    LearningGoal("movies", "Movies", "Watching films without subtitles"),
    LearningGoal("conversation", "Conversation", "Everyday spoken English"),
)

DEFAULT_GOAL_ID = "conversation"

PLACEMENT_QUESTION_COUNT = 10


def get_goal(goal_id: str) -> LearningGoal | None:
    for goal in GOAL_OPTIONS:
        if goal.id == goal_id:
            return goal
    return None


def goal_topic_tag(goal_id: str) -> str:
    """Topic tag for a goal. Unknown ids are used as the tag directly."""
    goal = get_goal(goal_id)
    return goal.topic_tag if goal else goal_id


def calculate_level_from_score(correct_count: int) -> UserLevel:
    """
    Map a placement test score (0-10 correct) to a user level.

    0-3 -> Beginner, 4-6 -> PreIntermediate, 7-8 -> Intermediate,
    9-10 -> UpperIntermediate.
    """
    if correct_count <= 3:
        return UserLevel.BEGINNER
    if correct_count <= 6:
        return UserLevel.PRE_INTERMEDIATE
    if correct_count <= 8:
        return UserLevel.INTERMEDIATE
    return UserLevel.UPPER_INTERMEDIATE
