"""Load authored quiz scenarios from bundled JSON resources."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, cast

from .models import ACTIONS, DIFFICULTIES, STREETS, ActionType, Difficulty, Scenario, SeatState, Street, TableAction

CONTENT_PACKAGE = "pokerquiz.content"
CATALOG_RESOURCE = "scenarios.json"


def _seat_from_dict(raw: dict[str, Any]) -> SeatState:
    """Build a seat from raw JSON content."""
    return SeatState(
        position=str(raw["position"]),
        stack=int(raw.get("stack", 0)),
        is_hero=bool(raw.get("is_hero", False)),
        is_folded=bool(raw.get("is_folded", False)),
        current_bet=int(raw.get("current_bet", 0)),
    )


def _table_action_from_dict(raw: dict[str, Any]) -> TableAction:
    """Build a hand-history action from raw JSON content."""
    amount = raw.get("amount")
    return TableAction(
        type=str(raw["type"]),
        position=str(raw["position"]),
        amount=int(amount) if amount is not None else None,
    )


def _scenario_from_dict(raw: dict[str, Any]) -> Scenario:
    """Build a scenario from raw JSON content."""
    scenario_id = str(raw.get("id", "")).strip()
    if not scenario_id:
        raise ValueError("Scenario is missing an id.")

    difficulty = str(raw.get("difficulty", ""))
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Scenario '{scenario_id}' has unknown difficulty '{difficulty}'.")
    street = str(raw.get("street", ""))
    if street not in STREETS:
        raise ValueError(f"Scenario '{scenario_id}' has unknown street '{street}'.")

    valid_actions = tuple(str(item) for item in raw.get("valid_actions", []))
    if not valid_actions:
        raise ValueError(f"Scenario '{scenario_id}' has no valid actions.")
    unknown = [item for item in valid_actions if item not in ACTIONS]
    if unknown:
        raise ValueError(f"Scenario '{scenario_id}' has unknown actions: {', '.join(unknown)}")
    optimal_action = str(raw.get("optimal_action", ""))
    if optimal_action not in valid_actions:
        raise ValueError(f"Scenario '{scenario_id}' optimal action '{optimal_action}' is not a valid action.")

    optimal_amount = raw.get("optimal_amount")
    tags = tuple(dict.fromkeys(str(tag).strip() for tag in raw.get("tags", []) if str(tag).strip()))
    return Scenario(
        id=scenario_id,
        difficulty=cast(Difficulty, difficulty),
        street=cast(Street, street),
        valid_actions=cast(tuple[ActionType, ...], valid_actions),
        optimal_action=cast(ActionType, optimal_action),
        tags=tags,
        hero_position=str(raw.get("hero_position", "")),
        hero_cards=tuple(str(card) for card in raw.get("hero_cards", [])),
        community_cards=tuple(str(card) for card in raw.get("community_cards", [])),
        pot=int(raw.get("pot", 0)),
        players=tuple(_seat_from_dict(item) for item in raw.get("players", [])),
        action_history=tuple(_table_action_from_dict(item) for item in raw.get("action_history", [])),
        optimal_amount=int(optimal_amount) if optimal_amount is not None else None,
        explanation=str(raw.get("explanation", "")),
        key_concept=str(raw.get("key_concept", "")),
    )


def _catalog_from_payload(raw: object) -> list[Scenario]:
    """Build and validate a catalog from a decoded JSON document."""
    if isinstance(raw, dict):
        items: object = cast(dict[str, object], raw).get("scenarios", [])
    else:
        items = raw
    if not isinstance(items, list):
        raise ValueError("Scenario catalog must be a list of scenarios.")

    scenarios = [_scenario_from_dict(item) for item in cast(list[dict[str, Any]], items)]
    _validate_unique_scenario_ids(scenarios)
    return scenarios


def load_scenarios() -> list[Scenario]:
    """Load the bundled scenario catalog."""
    entry = resources.files(CONTENT_PACKAGE).joinpath(CATALOG_RESOURCE)
    raw = json.loads(entry.read_text(encoding="utf-8-sig"))
    return _catalog_from_payload(raw)


def load_scenarios_from_file(path: Path | str) -> list[Scenario]:
    """Load a scenario catalog from a JSON file for tests/tools."""
    raw = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    return _catalog_from_payload(raw)


def _validate_unique_scenario_ids(scenarios: list[Scenario]) -> None:
    """Validate that scenario IDs are unique across the catalog."""
    seen: set[str] = set()
    for scenario in scenarios:
        if scenario.id in seen:
            raise ValueError(f"Duplicate scenario id: {scenario.id}")
        seen.add(scenario.id)
