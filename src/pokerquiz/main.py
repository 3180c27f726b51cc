"""CLI entrypoint for the poker decision quiz."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import cast

from . import leveling
from .models import (
    ACHIEVEMENT_CATEGORIES,
    ACTIONS,
    DIFFICULTIES,
    DIFFICULTY_FILTERS,
    STREET_FILTERS,
    STREETS,
    DifficultyFilter,
    Scenario,
)
from .progress import SqliteStateStore
from .selector import count_by_difficulty
from .service import AnswerOutcome, QuizService

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
FLOW_EXIT_COMMANDS = {":quit", ":exit", ":q", ":b", ":back"}
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}
DEFAULT_DB_PATH = Path(".pokerquiz") / "progress.db"
SUIT_SYMBOLS = {"s": "♠", "h": "♥", "d": "♦", "c": "♣"}


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, os.environ.get("POKERQUIZ_LOG_LEVEL", "WARNING").upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _service(db_path: Path) -> QuizService:
    """Create app service backed by a local database."""
    return QuizService(SqliteStateStore(db_path))


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="pokerquiz", description="Poker decision quiz with XP and achievements")
    parser.add_argument("command", nargs="?", default="play", choices=["play"])
    parser.add_argument(
        "--db",
        type=Path,
        default=Path(os.environ.get("POKERQUIZ_DB", str(DEFAULT_DB_PATH))),
        help="progress database path (default: %(default)s)",
    )
    args = parser.parse_args(argv)
    _configure_logging()
    return play_shell(db_path=args.db)


def play_shell(input_fn: InputFn = input, print_fn: PrintFn = print, db_path: Path = DEFAULT_DB_PATH) -> int:
    """Run persistent menu-driven shell."""
    service = _service(db_path)
    try:
        while True:
            info = service.level_info()
            print_fn("\n=== Poker Quiz ===")
            print_fn(_level_line(service))
            if not info.max_level:
                print_fn(f"{info.xp_to_next} XP to level {info.level + 1}")
            print_fn("1) Quick play")
            print_fn("2) Choose difficulty")
            print_fn("3) Stats")
            print_fn("4) Achievements")
            print_fn("5) Settings")
            print_fn("6) Admin")
            print_fn("q) Quit")
            choice = input_fn("Choose: ").strip().lower()

            if choice == "1":
                _quiz_flow(service, input_fn, print_fn)
            elif choice == "2":
                _difficulty_flow(service, input_fn, print_fn)
            elif choice == "3":
                _stats_flow(service, print_fn)
            elif choice == "4":
                _achievements_flow(service, print_fn)
            elif choice == "5":
                _settings_flow(service, input_fn, print_fn)
            elif choice == "6":
                _admin_flow(service, input_fn, print_fn)
            elif choice in MENU_QUIT_COMMANDS:
                return 0
            else:
                print_fn("Invalid choice.")
    except QuitApp:
        return 0
    finally:
        service.close()


def _level_line(service: QuizService) -> str:
    info = service.level_info()
    return f"Level {info.level} | {leveling.format_xp(info.xp)} XP | {info.progress_percent}% to next level"


def _difficulty_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Pick a difficulty tier and start a session with it."""
    available = service.available_difficulties()
    counts = count_by_difficulty(service.catalog)
    print_fn("\n=== Choose Difficulty ===")
    for idx, difficulty in enumerate(DIFFICULTIES, start=1):
        if difficulty in available:
            status = f"{counts[difficulty]} scenarios"
        else:
            status = f"locked, unlocks at level {leveling.DIFFICULTY_UNLOCK_LEVELS[difficulty]}"
        print_fn(f"{idx}) {difficulty:<12} {status}")
    print_fn("b) Back")
    print_fn("q) Quit")
    choice = input_fn("Choose difficulty: ").strip().lower()
    if choice in MENU_BACK_COMMANDS:
        return
    if choice in MENU_QUIT_COMMANDS:
        raise QuitApp()
    if not choice.isdigit() or not (1 <= int(choice) <= len(DIFFICULTIES)):
        print_fn("Invalid choice.")
        return
    difficulty = DIFFICULTIES[int(choice) - 1]
    if difficulty not in available:
        print_fn(f"{difficulty.title()} is locked.")
        return
    config = service.settings.session_config()
    _quiz_flow(service, input_fn, print_fn, difficulty=difficulty, question_count=config.question_count)


def _quiz_flow(
    service: QuizService,
    input_fn: InputFn,
    print_fn: PrintFn,
    *,
    difficulty: str | None = None,
    question_count: int | None = None,
) -> None:
    """Run one quiz session from start to summary."""
    config = service.settings.session_config()
    if difficulty is not None:
        config = replace(config, difficulty=cast(DifficultyFilter, difficulty))
    if question_count is not None:
        config = replace(config, question_count=question_count)
    try:
        session = service.start_session(config)
    except ValueError as exc:
        print_fn(f"Could not start session: {exc}")
        return

    total = session.config.question_count
    print_fn(f"\n=== Quiz: {session.config.difficulty}, {total} questions ===")
    print_fn("Type :q to end the session early.")
    while True:
        scenario = service.next_scenario()
        if scenario is None:
            if not session.completed:
                print_fn("No more questions match these filters.")
                service.end_session()
            break

        print_fn(f"\nQuestion {len(session.results) + 1}/{total}")
        _print_scenario(scenario, print_fn)
        outcome = _ask_action(service, scenario, input_fn, print_fn)
        if outcome is None:
            service.end_session()
            print_fn("Session ended early.")
            break
        _print_outcome(service, outcome, print_fn)

    _print_summary(service, print_fn)


def _ask_action(
    service: QuizService, scenario: Scenario, input_fn: InputFn, print_fn: PrintFn
) -> AnswerOutcome | None:
    """Prompt until a valid action is chosen; None means the player left."""
    options = list(scenario.valid_actions)
    for idx, action in enumerate(options, start=1):
        print_fn(f"{idx}) {action}")
    while True:
        choice = input_fn("Your action: ").strip().lower()
        if choice in FLOW_EXIT_COMMANDS:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(options):
            choice = options[int(choice) - 1]
        if choice in options:
            return service.submit_answer(choice)
        print_fn("Invalid action.")


def _card_label(card: str) -> str:
    return card[:-1] + SUIT_SYMBOLS.get(card[-1:], card[-1:])


def _print_scenario(scenario: Scenario, print_fn: PrintFn) -> None:
    print_fn(f"[{scenario.difficulty} / {scenario.street}] You are {scenario.hero_position}")
    print_fn(f"Hand: {' '.join(_card_label(card) for card in scenario.hero_cards)}")
    if scenario.community_cards:
        print_fn(f"Board: {' '.join(_card_label(card) for card in scenario.community_cards)}")
    print_fn(f"Pot: {scenario.pot}")
    for seat in scenario.players:
        marker = "*" if seat.is_hero else " "
        state = "folded" if seat.is_folded else f"stack {seat.stack}"
        bet = f", bet {seat.current_bet}" if seat.current_bet else ""
        print_fn(f" {marker}{seat.position:<4} {state}{bet}")
    if scenario.action_history:
        history = ", ".join(
            f"{item.position} {item.type}" + (f" {item.amount}" if item.amount is not None else "")
            for item in scenario.action_history
        )
        print_fn(f"Action: {history}")


def _print_outcome(service: QuizService, outcome: AnswerOutcome, print_fn: PrintFn) -> None:
    scenario = outcome.scenario
    if outcome.result.is_correct:
        print_fn(f"Correct! +{outcome.result.xp_earned} XP")
    else:
        print_fn(f"Incorrect. Best play: {scenario.optimal_action}. +{outcome.result.xp_earned} XP")
    if scenario.key_concept:
        print_fn(f"Key concept: {scenario.key_concept}")
    if scenario.explanation:
        print_fn(scenario.explanation)
    if outcome.leveled_up:
        print_fn(f"Level up! You reached level {outcome.level_after}.")
    for difficulty in outcome.unlocked_difficulties:
        print_fn(f"Unlocked {difficulty} difficulty.")
    for achievement in service.pending_achievements():
        print_fn(f"Achievement unlocked: {achievement.icon} {achievement.title} - {achievement.description}")
    service.clear_pending_achievements()


def _print_summary(service: QuizService, print_fn: PrintFn) -> None:
    summary = service.session_summary()
    print_fn("\n=== Session Summary ===")
    print_fn(f"Correct: {summary.correct_count}/{summary.total_questions} ({summary.accuracy}%)")
    print_fn(f"XP earned: {summary.total_xp}")
    print_fn(f"Best streak: {summary.best_streak}")
    print_fn(_level_line(service))
    for achievement in service.pending_achievements():
        print_fn(f"Achievement unlocked: {achievement.icon} {achievement.title} - {achievement.description}")
    service.clear_pending_achievements()


def _stats_flow(service: QuizService, print_fn: PrintFn) -> None:
    """Print overall and per-category accuracy."""
    stats = service.progress.stats
    print_fn("\n=== Stats ===")
    print_fn(f"Questions answered: {stats.total_questions_answered}")
    print_fn(f"Correct: {stats.total_correct} ({stats.accuracy}%)")
    print_fn(f"Best streak: {stats.best_streak}")
    print_fn(f"Sessions completed: {stats.total_sessions}")
    for title, table, keys in (
        ("By difficulty", stats.by_difficulty, DIFFICULTIES),
        ("By street", stats.by_street, STREETS),
        ("By action", stats.by_action, ACTIONS),
    ):
        print_fn(f"\n{title}:")
        width = max(len(key) for key in keys)
        for key in keys:
            line = table[key]
            print_fn(f"{key:<{width}} {line.correct:>4}/{line.answered:<4} {line.accuracy:>3}%")


def _achievements_flow(service: QuizService, print_fn: PrintFn) -> None:
    """Print achievements grouped by category with progress."""
    statuses = service.achievement_statuses()
    unlocked = sum(1 for status in statuses if status.unlocked)
    print_fn(f"\n=== Achievements ({unlocked}/{len(statuses)}) ===")
    for category in ACHIEVEMENT_CATEGORIES:
        print_fn(f"\n{category.title()}:")
        for status in statuses:
            definition = status.definition
            if definition.category != category:
                continue
            mark = "x" if status.unlocked else " "
            progress = status.progress
            print_fn(
                f"[{mark}] {definition.icon} {definition.title}: {definition.description} "
                f"({progress.current}/{progress.target}, {progress.percentage}%)"
            )


def _settings_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Show and edit player preferences."""
    while True:
        settings = service.settings
        print_fn("\n=== Settings ===")
        print_fn(f"1) Session length: {settings.default_session_length}")
        print_fn(f"2) Default difficulty: {settings.default_difficulty}")
        print_fn(f"3) Street filter: {settings.street_filter}")
        print_fn(f"4) Topics: {', '.join(settings.topics) if settings.topics else 'any'}")
        print_fn(f"5) Sound: {'on' if settings.sound_enabled else 'off'}")
        print_fn(f"6) Reduced motion: {'on' if settings.reduced_motion else 'off'}")
        print_fn("b) Back")
        print_fn("q) Quit")
        choice = input_fn("Choose setting: ").strip().lower()
        if choice in MENU_BACK_COMMANDS:
            return
        if choice in MENU_QUIT_COMMANDS:
            raise QuitApp()
        try:
            if choice == "1":
                value = input_fn("Questions per session: ").strip()
                if not value.isdigit():
                    print_fn("Enter a positive number.")
                    continue
                service.update_settings(default_session_length=int(value))
            elif choice == "2":
                value = input_fn(f"Difficulty ({'/'.join(DIFFICULTY_FILTERS)}): ").strip().lower()
                service.update_settings(default_difficulty=value)
            elif choice == "3":
                value = input_fn(f"Street ({'/'.join(STREET_FILTERS)}): ").strip().lower()
                service.update_settings(street_filter=value)
            elif choice == "4":
                value = input_fn("Topics (comma separated, blank = any): ")
                topics = tuple(item.strip() for item in value.split(",") if item.strip())
                service.update_settings(topics=topics)
            elif choice == "5":
                service.update_settings(sound_enabled=not settings.sound_enabled)
            elif choice == "6":
                service.update_settings(reduced_motion=not settings.reduced_motion)
            else:
                print_fn("Invalid choice.")
        except ValueError as exc:
            print_fn(f"Could not update settings: {exc}")


def _admin_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Export, import, or reset progress."""
    while True:
        print_fn("\n=== Admin ===")
        print_fn("1) Export progress")
        print_fn("2) Import progress")
        print_fn("3) Reset progress")
        print_fn("b) Back")
        print_fn("q) Quit")
        choice = input_fn("Choose admin option: ").strip().lower()
        if choice in MENU_BACK_COMMANDS:
            return
        if choice in MENU_QUIT_COMMANDS:
            raise QuitApp()
        if choice == "1":
            _export_flow(service, input_fn, print_fn)
        elif choice == "2":
            _import_flow(service, input_fn, print_fn)
        elif choice == "3":
            _reset_flow(service, input_fn, print_fn)
        else:
            print_fn("Invalid choice.")


def _export_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    path_text = input_fn("Export file path: ").strip()
    if not path_text:
        print_fn("File path is required.")
        return
    try:
        path = service.export_progress(path_text)
    except OSError as exc:
        print_fn(f"Export failed: {exc}")
        return
    print_fn(f"Exported progress to {path}")


def _import_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    path_text = input_fn("Import file path: ").strip()
    if not path_text:
        print_fn("File path is required.")
        return
    try:
        service.import_progress(path_text)
    except (OSError, ValueError) as exc:
        print_fn(f"Import failed: {exc}")
        return
    print_fn(f"Imported progress. {_level_line(service)}")


def _reset_flow(service: QuizService, input_fn: InputFn, print_fn: PrintFn) -> None:
    print_fn("WARNING: This permanently deletes all XP, levels, achievements, and stats.")
    confirm = input_fn("Type YES to confirm reset: ").strip()
    if confirm != "YES":
        print_fn("Reset cancelled.")
        return
    service.reset_progress()
    print_fn("Progress reset.")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
