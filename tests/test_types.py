import pytest

from socratic_types import (
    CONNECTION_STYLES, ConnectionType, Evaluation, GrowthTier, Phase,
    connection_style, new_id,
)


def test_every_connection_type_has_a_style() -> None:
    assert set(CONNECTION_STYLES) == set(ConnectionType)
    assert connection_style(ConnectionType.SUPPORTS).label == "Supports"


def test_phase_order() -> None:
    assert [p.value for p in Phase] == ["challenge", "canvas", "select", "refine", "final"]
    assert Phase.CHALLENGE.next() is Phase.CANVAS
    assert Phase.FINAL.next() is Phase.FINAL
    assert Phase("hmw") is Phase.CHALLENGE
    with pytest.raises(ValueError):
        Phase("later")


@pytest.mark.parametrize(
    "score, tier",
    [(0, GrowthTier.SEED), (41, GrowthTier.SPROUT), (61, GrowthTier.TREE), (81, GrowthTier.FOREST)],
)
def test_evaluation_growth_tier_follows_ai_score(score, tier) -> None:
    assert Evaluation("c-1", score).growth_tier.tier is tier


def test_evaluation_student_growth_tier() -> None:
    tiers = [Evaluation("c-1", 50, student_score=s).student_growth_tier.tier for s in (1, 3, 4, 5)]

    assert tiers == [GrowthTier.SEED, GrowthTier.SPROUT, GrowthTier.TREE, GrowthTier.FOREST]
    assert Evaluation("c-1", 50).student_growth_tier is None


def test_new_ids_are_unique_and_prefixed() -> None:
    first, second = new_id("note"), new_id("note")

    assert first != second
    assert first.startswith("note-")
