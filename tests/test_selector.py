import random

from pokerquiz.content_loader import load_scenarios
from pokerquiz.models import Scenario, SessionConfig
from pokerquiz.selector import (
    available_topics,
    build_session,
    count_by_difficulty,
    filter_scenarios,
    is_valid_action,
    scenarios_by_difficulty,
    select_random,
    select_weighted,
)


def _scenario(scenario_id: str, difficulty: str = "beginner", street: str = "preflop", tags: tuple[str, ...] = ()):
    return Scenario(
        id=scenario_id,
        difficulty=difficulty,  # type: ignore[arg-type]
        street=street,  # type: ignore[arg-type]
        valid_actions=("fold", "call", "raise"),
        optimal_action="raise",
        tags=tags,
    )


def test_filter_by_difficulty_and_street() -> None:
    catalog = load_scenarios()
    found = filter_scenarios(catalog, SessionConfig(difficulty="beginner", street_filter="preflop"))
    assert [scenario.id for scenario in found] == ["beginner-1", "beginner-2", "beginner-3"]


def test_postflop_filter_excludes_preflop_only() -> None:
    catalog = load_scenarios()
    found = filter_scenarios(catalog, SessionConfig(difficulty="all", street_filter="postflop"))
    assert found
    assert all(scenario.street != "preflop" for scenario in found)
    assert {scenario.street for scenario in found} == {"flop", "turn", "river"}


def test_topic_filter_matches_any_tag() -> None:
    catalog = [
        _scenario("a", tags=("bluff",)),
        _scenario("b", tags=("value-bet", "river")),
        _scenario("c", tags=("fold",)),
    ]
    found = filter_scenarios(catalog, SessionConfig(difficulty="all", topics=("bluff", "river")))
    assert [scenario.id for scenario in found] == ["a", "b"]


def test_exclude_ids_are_never_returned() -> None:
    catalog = load_scenarios()
    config = SessionConfig(difficulty="beginner")
    excluded = ["beginner-1", "beginner-2", "beginner-3", "beginner-4", "beginner-5"]
    rng = random.Random(1)
    for _ in range(20):
        picked = select_random(catalog, config, excluded, rng)
        assert picked is not None
        assert picked.id == "beginner-6"


def test_select_random_returns_none_when_nothing_matches() -> None:
    catalog = [_scenario("a", street="flop")]
    assert select_random(catalog, SessionConfig(street_filter="river")) is None
    assert select_random([], SessionConfig()) is None


def test_select_random_is_reproducible_with_seed() -> None:
    catalog = load_scenarios()
    config = SessionConfig(difficulty="all")
    first = [select_random(catalog, config, (), random.Random(42)) for _ in range(3)]
    second = [select_random(catalog, config, (), random.Random(42)) for _ in range(3)]
    assert first == second


def test_build_session_uses_unique_scenarios_first() -> None:
    catalog = load_scenarios()
    drawn = build_session(catalog, SessionConfig(question_count=6, difficulty="beginner"), random.Random(3))
    assert len(drawn) == 6
    assert len({scenario.id for scenario in drawn}) == 6


def test_build_session_repeats_after_exhausting_pool() -> None:
    catalog = [_scenario("a"), _scenario("b")]
    drawn = build_session(catalog, SessionConfig(question_count=5), random.Random(5))
    assert len(drawn) == 5
    assert {scenario.id for scenario in drawn[:2]} == {"a", "b"}


def test_build_session_empty_when_no_matches() -> None:
    assert build_session([_scenario("a")], SessionConfig(difficulty="expert")) == []


def test_select_weighted_prefers_difficulty() -> None:
    catalog = load_scenarios()
    rng = random.Random(11)
    picks = [select_weighted(catalog, 1, "beginner", rng) for _ in range(200)]
    assert all(pick is not None for pick in picks)
    beginner = sum(1 for pick in picks if pick is not None and pick.difficulty == "beginner")
    assert beginner > 150
    assert select_weighted([], 5) is None


def test_select_weighted_still_draws_zero_weight_tiers() -> None:
    catalog = load_scenarios()
    rng = random.Random(0)
    picks = [select_weighted(catalog, 1, None, rng) for _ in range(2000)]
    counts = {difficulty: 0 for difficulty in ("beginner", "intermediate", "advanced", "expert")}
    for pick in picks:
        assert pick is not None
        counts[pick.difficulty] += 1
    assert counts["advanced"] > 0
    assert counts["expert"] > 0
    assert counts["beginner"] > counts["advanced"] + counts["expert"]


def test_catalog_helpers() -> None:
    catalog = load_scenarios()
    assert count_by_difficulty(catalog) == {"beginner": 6, "intermediate": 6, "advanced": 6, "expert": 6}
    assert count_by_difficulty([]) == {"beginner": 0, "intermediate": 0, "advanced": 0, "expert": 0}
    assert len(scenarios_by_difficulty(catalog, "expert")) == 6
    topics = available_topics(catalog)
    assert topics == sorted(set(topics))
    assert "bluff" in topics
    assert is_valid_action(catalog[0], "raise") is True
    assert is_valid_action(catalog[0], "bet") is False
