import pytest

from lexicard.domain.goals import (
    DEFAULT_GOAL_ID,
    GOAL_OPTIONS,
    UserLevel,
    calculate_level_from_score,
    get_goal,
    goal_topic_tag,
)


@pytest.mark.parametrize(
    "score,expected",
    [
        (0, UserLevel.BEGINNER),
        (3, UserLevel.BEGINNER),
        (4, UserLevel.PRE_INTERMEDIATE),
        (6, UserLevel.PRE_INTERMEDIATE),
        (7, UserLevel.INTERMEDIATE),
        (8, UserLevel.INTERMEDIATE),
        (9, UserLevel.UPPER_INTERMEDIATE),
        (10, UserLevel.UPPER_INTERMEDIATE),
    ],
)
def test_calculate_level_from_score(score, expected):
    assert calculate_level_from_score(score) == expected


def test_levels_are_card_difficulties():
    assert [int(level) for level in UserLevel] == [0, 1, 2, 3]


def test_goal_lookup():
    travel = get_goal("travel")
    assert travel is not None
    assert travel.topic_tag == "travel"
    assert get_goal("astrophysics") is None


def test_goal_topic_tag_unknown_goal_passes_through():
    assert goal_topic_tag("business") == "business"
    assert goal_topic_tag("cooking") == "cooking"


def test_default_goal_is_an_option():
    assert DEFAULT_GOAL_ID in {goal.id for goal in GOAL_OPTIONS}
    assert len({goal.id for goal in GOAL_OPTIONS}) == len(GOAL_OPTIONS)
