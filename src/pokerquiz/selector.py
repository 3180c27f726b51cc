"""Scenario filtering and random selection for quiz sessions."""

from __future__ import annotations

import logging
import random
from collections.abc import Collection, Iterable, Sequence

from .models import DIFFICULTIES, Scenario, SessionConfig

logger = logging.getLogger(__name__)


def filter_scenarios(
    catalog: Iterable[Scenario], config: SessionConfig, exclude_ids: Collection[str] = ()
) -> list[Scenario]:
    """Return catalog scenarios matching a session config.

    Filters apply in order: excluded ids, difficulty, street, topics.
    The `postflop` street filter keeps every street except preflop.
    """
    excluded = set(exclude_ids)
    candidates = [scenario for scenario in catalog if scenario.id not in excluded]

    if config.difficulty != "all":
        candidates = [scenario for scenario in candidates if scenario.difficulty == config.difficulty]

    if config.street_filter == "postflop":
        candidates = [scenario for scenario in candidates if scenario.street != "preflop"]
    elif config.street_filter != "all":
        candidates = [scenario for scenario in candidates if scenario.street == config.street_filter]

    if config.topics:
        topics = set(config.topics)
        candidates = [scenario for scenario in candidates if not topics.isdisjoint(scenario.tags)]

    return candidates


def select_random(
    catalog: Iterable[Scenario],
    config: SessionConfig,
    exclude_ids: Collection[str] = (),
    rng: random.Random | None = None,
) -> Scenario | None:
    """Return a uniformly random matching scenario, or None when nothing matches."""
    candidates = filter_scenarios(catalog, config, exclude_ids)
    if not candidates:
        return None
    if rng is None:
        return random.choice(candidates)
    return rng.choice(candidates)


def build_session(
    catalog: Sequence[Scenario], config: SessionConfig, rng: random.Random | None = None
) -> list[Scenario]:
    """Pre-draw a full session, allowing repeats once unique scenarios run out."""
    selected: list[Scenario] = []
    used_ids: list[str] = []
    for _ in range(config.question_count):
        scenario = select_random(catalog, config, used_ids, rng)
        if scenario is None:
            scenario = select_random(catalog, config, (), rng)
            if scenario is None:
                logger.debug("No scenarios match session config %s", config)
                break
        else:
            used_ids.append(scenario.id)
        selected.append(scenario)
    return selected


def select_weighted(
    catalog: Sequence[Scenario],
    level: int,
    preferred_difficulty: str | None = None,
    rng: random.Random | None = None,
) -> Scenario | None:
    """Pick a scenario weighted toward difficulties suited to a player level.

    Beginner weight fades as the level rises while harder tiers phase in.
    A preferred difficulty gets ten times its normal weight. Tiers whose
    weight works out to zero still draw with weight 1.
    """
    if not catalog:
        return None
    chooser = rng if rng is not None else random.Random()

    weights: dict[str, int] = {
        "beginner": max(1, 5 - level),
        "intermediate": min(level, 5),
        "advanced": max(0, min(level - 3, 5)),
        "expert": max(0, min(level - 6, 5)),
    }
    if preferred_difficulty is not None and preferred_difficulty in weights:
        weights[preferred_difficulty] *= 10

    scenario_weights = [weights.get(scenario.difficulty, 0) or 1 for scenario in catalog]
    return chooser.choices(list(catalog), weights=scenario_weights, k=1)[0]


def available_topics(catalog: Iterable[Scenario]) -> list[str]:
    """Return sorted unique topic tags across the catalog."""
    return sorted({tag for scenario in catalog for tag in scenario.tags})


def scenarios_by_difficulty(catalog: Iterable[Scenario], difficulty: str) -> list[Scenario]:
    """Return scenarios for one difficulty."""
    return [scenario for scenario in catalog if scenario.difficulty == difficulty]


def count_by_difficulty(catalog: Iterable[Scenario]) -> dict[str, int]:
    """Count scenarios per difficulty, including empty tiers."""
    counts = {difficulty: 0 for difficulty in DIFFICULTIES}
    for scenario in catalog:
        counts[scenario.difficulty] += 1
    return counts


def is_valid_action(scenario: Scenario, action: str) -> bool:
    """Return whether an action is offered by a scenario."""
    return action in scenario.valid_actions
