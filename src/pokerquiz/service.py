"""Application service for quiz sessions and player progression."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, fields, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import cast
from uuid import uuid4

from . import leveling
from .achievements import AchievementStatus, achievements_with_status, check_newly_unlocked, to_achievement
from .content_loader import load_scenarios
from .models import (
    ACTIONS,
    DIFFICULTIES,
    DIFFICULTY_FILTERS,
    STREET_FILTERS,
    Achievement,
    ActionType,
    Difficulty,
    PlayerProgress,
    PlayerSettings,
    Scenario,
    Session,
    SessionConfig,
    SessionResult,
    round_half_up,
)
from .progress import StateDocument, StateStore, export_state, import_state
from .selector import select_random

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerOutcome:
    """Everything the host needs to render feedback for one answer."""

    result: SessionResult
    scenario: Scenario
    level_before: int
    level_after: int
    unlocked_difficulties: tuple[Difficulty, ...]
    new_achievements: tuple[Achievement, ...]

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


@dataclass(frozen=True)
class SessionSummary:
    """Aggregated results of one session."""

    total_questions: int
    correct_count: int
    accuracy: int
    total_xp: int
    best_streak: int


@dataclass(frozen=True)
class LevelInfo:
    """Level standing derived from cumulative XP."""

    level: int
    xp: int
    progress_percent: int
    xp_to_next: int
    max_level: bool
    next_unlock: tuple[Difficulty, int] | None


class QuizService:
    """Owns the active session and all player progress mutation."""

    def __init__(
        self,
        store: StateStore,
        catalog: Sequence[Scenario] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize service with a persistence collaborator and scenario catalog."""
        self.store = store
        self.catalog: list[Scenario] = list(catalog) if catalog is not None else load_scenarios()
        self._scenarios_by_id = {scenario.id: scenario for scenario in self.catalog}
        self._rng = rng if rng is not None else random.Random()
        document = store.load() or StateDocument()
        self._progress = document.progress
        self._settings = document.settings
        self._session: Session | None = None
        self._current_scenario: Scenario | None = None
        self._answered = False
        self._served_ids: list[str] = []
        self._pending: list[Achievement] = []

    @property
    def progress(self) -> PlayerProgress:
        return self._progress

    @property
    def settings(self) -> PlayerSettings:
        return self._settings

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def current_scenario(self) -> Scenario | None:
        return self._current_scenario

    @property
    def is_session_active(self) -> bool:
        return self._session is not None and not self._session.completed

    def get_scenario(self, scenario_id: str) -> Scenario | None:
        """Get scenario by id."""
        return self._scenarios_by_id.get(scenario_id)

    def available_difficulties(self) -> list[Difficulty]:
        """Return difficulties the player may start a session with."""
        return [
            difficulty
            for difficulty in DIFFICULTIES
            if difficulty in self._progress.unlocked_difficulties
            or leveling.is_difficulty_unlocked(difficulty, self._progress.level)
        ]

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, config: SessionConfig | None = None) -> Session:
        """Start a fresh session, replacing any previous one."""
        if config is None:
            config = self._settings.session_config()
        self._validate_config(config)

        self._session = Session(id=uuid4().hex, config=config, started_at=datetime.now(UTC).isoformat())
        self._current_scenario = None
        self._answered = False
        self._served_ids = []
        logger.info("Started session %s (%s)", self._session.id, config)
        return self._session

    def _validate_config(self, config: SessionConfig) -> None:
        if config.question_count <= 0:
            raise ValueError("Session question count must be positive.")
        if config.difficulty not in DIFFICULTY_FILTERS:
            raise ValueError(f"Unknown difficulty filter '{config.difficulty}'.")
        if config.street_filter not in STREET_FILTERS:
            raise ValueError(f"Unknown street filter '{config.street_filter}'.")
        if config.difficulty != "all" and config.difficulty not in self.available_difficulties():
            required = leveling.DIFFICULTY_UNLOCK_LEVELS[config.difficulty]
            raise ValueError(f"Difficulty '{config.difficulty}' unlocks at level {required}.")

    def next_scenario(self) -> Scenario | None:
        """Serve the next question, or end the session when it is over.

        Returns None once the requested question count is reached or when no
        scenario matches the session filters.
        """
        session = self._session
        if session is None or session.completed:
            logger.debug("next_scenario called without an active session")
            return None
        if len(session.results) >= session.config.question_count:
            self.end_session()
            return None

        scenario = select_random(self.catalog, session.config, self._served_ids, self._rng)
        if scenario is None:
            logger.debug("Session %s exhausted unique scenarios; allowing repeats", session.id)
            scenario = select_random(self.catalog, session.config, (), self._rng)
        if scenario is None:
            logger.info("No scenarios match session %s filters", session.id)
            return None

        self.advance_to_next(scenario)
        return scenario

    def advance_to_next(self, scenario: Scenario) -> None:
        """Present a scenario as the current question."""
        session = self._session
        if session is None or session.completed:
            logger.debug("advance_to_next called without an active session")
            return
        if self._current_scenario is not None:
            session.current_question_index += 1
        self._current_scenario = scenario
        self._answered = False
        self._served_ids.append(scenario.id)

    def submit_answer(self, action: str, amount: int | None = None) -> AnswerOutcome | None:
        """Score an action for the current scenario and apply all progression updates."""
        session = self._session
        scenario = self._current_scenario
        if session is None or session.completed or scenario is None or self._answered:
            logger.debug("submit_answer ignored: no question awaiting an answer")
            return None
        if action not in ACTIONS:
            raise ValueError(f"Unknown action '{action}'.")
        if action not in scenario.valid_actions:
            raise ValueError(f"Action '{action}' is not available in scenario '{scenario.id}'.")

        is_correct = action == scenario.optimal_action
        xp_earned = leveling.compute_xp_reward(is_correct, scenario.difficulty, session.streak)
        result = SessionResult(
            scenario_id=scenario.id,
            player_action=cast(ActionType, action),
            is_correct=is_correct,
            xp_earned=xp_earned,
            player_amount=amount,
        )
        self._answered = True
        self._apply_result(session, result)

        level_before = self._progress.level
        xp_before = self._progress.xp
        self._credit_xp(xp_earned)
        self._update_stats(scenario, is_correct)

        unlocked: list[Difficulty] = []
        if leveling.level_increased(xp_before, self._progress.xp):
            logger.info("Level up: %d -> %d", level_before, self._progress.level)
            unlocked = self._unlock_difficulties()

        new_achievements = self._record_achievements()
        self._save()
        return AnswerOutcome(
            result=result,
            scenario=scenario,
            level_before=level_before,
            level_after=self._progress.level,
            unlocked_difficulties=tuple(unlocked),
            new_achievements=tuple(new_achievements),
        )

    def record_result(self, result: SessionResult) -> None:
        """Append a result to the active session and update streaks."""
        session = self._session
        if session is None or session.completed:
            logger.debug("record_result called without an active session")
            return
        self._apply_result(session, result)
        self._record_achievements()
        self._save()

    def _apply_result(self, session: Session, result: SessionResult) -> None:
        session.results.append(result)
        session.streak = session.streak + 1 if result.is_correct else 0
        stats = self._progress.stats
        stats.best_streak = max(stats.best_streak, session.streak)

    def end_session(self) -> Session | None:
        """Complete the active session and count it toward stats."""
        session = self._session
        if session is None or session.completed:
            logger.debug("end_session called without an active session")
            return None
        session.completed = True
        self._current_scenario = None
        self._progress.stats.total_sessions += 1
        self._record_achievements()
        self._save()
        logger.info("Completed session %s with %d results", session.id, len(session.results))
        return session

    # ------------------------------------------------------------------
    # Progress mutation
    # ------------------------------------------------------------------

    def _credit_xp(self, amount: int) -> None:
        if amount < 0:
            logger.warning("Ignoring negative XP credit %d", amount)
            amount = 0
        self._progress.xp = max(0, self._progress.xp + amount)
        self._progress.level = leveling.level_for_xp(self._progress.xp)

    def _update_stats(self, scenario: Scenario, is_correct: bool) -> None:
        stats = self._progress.stats
        hit = 1 if is_correct else 0
        stats.total_questions_answered += 1
        stats.total_correct += hit
        for table, key in (
            (stats.by_difficulty, scenario.difficulty),
            (stats.by_street, scenario.street),
            (stats.by_action, scenario.optimal_action),
        ):
            line = table[key]
            line.answered += 1
            line.correct += hit

    def _unlock_difficulties(self) -> list[Difficulty]:
        """Unlock every difficulty the current level allows."""
        newly: list[Difficulty] = []
        for difficulty in leveling.unlocked_difficulties(self._progress.level):
            if difficulty not in self._progress.unlocked_difficulties:
                self._progress.unlocked_difficulties.append(difficulty)
                newly.append(difficulty)
                logger.info("Unlocked difficulty %s at level %d", difficulty, self._progress.level)
        return newly

    def _record_achievements(self) -> list[Achievement]:
        """Record newly satisfied achievements and queue their notifications."""
        progress = self._progress
        unlocked_at = datetime.now(UTC).isoformat()
        recorded: list[Achievement] = []
        for definition in check_newly_unlocked(progress.stats, progress, progress.achievements):
            progress.achievements.append(definition.id)
            achievement = to_achievement(definition, unlocked_at)
            self._pending.append(achievement)
            recorded.append(achievement)
            logger.info("Unlocked achievement %s", definition.id)
        return recorded

    def pending_achievements(self) -> list[Achievement]:
        """Return unlocked achievements not yet shown to the player."""
        return list(self._pending)

    def clear_pending_achievements(self) -> None:
        """Drop achievement notifications after they were displayed."""
        self._pending.clear()

    def update_settings(self, **changes: object) -> PlayerSettings:
        """Apply a partial settings update."""
        known = {item.name for item in fields(PlayerSettings)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        length = changes.get("default_session_length", self._settings.default_session_length)
        if isinstance(length, bool) or not isinstance(length, int):
            raise ValueError("Default session length must be an integer.")
        for name in ("sound_enabled", "reduced_motion"):
            if name in changes and not isinstance(changes[name], bool):
                raise ValueError(f"Setting '{name}' must be true or false.")
        if "topics" in changes:
            topics = changes["topics"]
            if isinstance(topics, str) or not isinstance(topics, Sequence):
                raise ValueError("Topics must be a list of tags.")
            if not all(isinstance(item, str) for item in topics):
                raise ValueError("Topics must be strings.")
            changes["topics"] = tuple(cast(Sequence[str], topics))
        updated = replace(self._settings, **changes)
        if updated.default_session_length <= 0:
            raise ValueError("Default session length must be positive.")
        if updated.default_difficulty not in DIFFICULTY_FILTERS:
            raise ValueError(f"Unknown difficulty filter '{updated.default_difficulty}'.")
        if updated.street_filter not in STREET_FILTERS:
            raise ValueError(f"Unknown street filter '{updated.street_filter}'.")
        self._settings = updated
        self._save()
        return updated

    def reset_progress(self) -> None:
        """Overwrite progress with defaults and drop session state; settings are kept."""
        self._replace_progress(PlayerProgress())
        logger.info("Progress reset")

    def export_progress(self, export_path: Path | str) -> Path:
        """Write progress and settings to a JSON file."""
        return export_state(StateDocument(progress=self._progress, settings=self._settings), export_path)

    def import_progress(self, import_path: Path | str) -> None:
        """Replace progress and settings with a JSON export."""
        document = import_state(import_path)
        self._settings = document.settings
        self._replace_progress(document.progress)
        logger.info("Imported progress from %s", import_path)

    def _replace_progress(self, progress: PlayerProgress) -> None:
        self._progress = progress
        self._session = None
        self._current_scenario = None
        self._answered = False
        self._served_ids = []
        self._pending = []
        self._save()

    def _save(self) -> None:
        self.store.save(StateDocument(progress=self._progress, settings=self._settings))

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def session_summary(self, session: Session | None = None) -> SessionSummary:
        """Summarize results for a session, defaulting to the current one."""
        target = session if session is not None else self._session
        results = target.results if target is not None else []
        correct_count = sum(1 for result in results if result.is_correct)
        best = 0
        run = 0
        for result in results:
            run = run + 1 if result.is_correct else 0
            best = max(best, run)
        accuracy = round_half_up(100 * correct_count / len(results)) if results else 0
        return SessionSummary(
            total_questions=len(results),
            correct_count=correct_count,
            accuracy=accuracy,
            total_xp=sum(result.xp_earned for result in results),
            best_streak=best,
        )

    def level_info(self) -> LevelInfo:
        """Return level standing for the player."""
        xp = self._progress.xp
        level = self._progress.level
        return LevelInfo(
            level=level,
            xp=xp,
            progress_percent=leveling.progress_within_level(xp),
            xp_to_next=leveling.xp_to_next_level(xp),
            max_level=level >= leveling.MAX_LEVEL,
            next_unlock=leveling.next_difficulty_unlock(level),
        )

    def achievement_statuses(self) -> list[AchievementStatus]:
        """Return every achievement with unlock state and progress."""
        return achievements_with_status(self._progress.stats, self._progress, self._progress.achievements)

    def close(self) -> None:
        """Close resources."""
        self.store.close()
