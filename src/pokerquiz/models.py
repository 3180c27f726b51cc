"""Core domain models for poker decision quizzes and player progression."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

Difficulty = Literal["beginner", "intermediate", "advanced", "expert"]
Street = Literal["preflop", "flop", "turn", "river"]
ActionType = Literal["fold", "check", "call", "raise", "bet", "all-in"]
DifficultyFilter = Literal["beginner", "intermediate", "advanced", "expert", "all"]
StreetFilter = Literal["preflop", "flop", "turn", "river", "all", "postflop"]
AchievementCategory = Literal["accuracy", "streaks", "volume", "milestones"]

DIFFICULTIES: tuple[Difficulty, ...] = ("beginner", "intermediate", "advanced", "expert")
STREETS: tuple[Street, ...] = ("preflop", "flop", "turn", "river")
ACTIONS: tuple[ActionType, ...] = ("fold", "check", "call", "raise", "bet", "all-in")
DIFFICULTY_FILTERS: tuple[str, ...] = (*DIFFICULTIES, "all")
STREET_FILTERS: tuple[str, ...] = (*STREETS, "all", "postflop")
ACHIEVEMENT_CATEGORIES: tuple[AchievementCategory, ...] = ("accuracy", "streaks", "volume", "milestones")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class SeatState:
    """One seat at the table in a scenario snapshot."""

    position: str
    stack: int
    is_hero: bool = False
    is_folded: bool = False
    current_bet: int = 0


@dataclass(frozen=True)
class TableAction:
    """One prior action in a scenario's hand history."""

    type: str
    position: str
    amount: int | None = None


@dataclass(frozen=True)
class Scenario:
    """One authored quiz scenario."""

    id: str
    difficulty: Difficulty
    street: Street
    valid_actions: tuple[ActionType, ...]
    optimal_action: ActionType
    tags: tuple[str, ...]
    hero_position: str = ""
    hero_cards: tuple[str, ...] = ()
    community_cards: tuple[str, ...] = ()
    pot: int = 0
    players: tuple[SeatState, ...] = ()
    action_history: tuple[TableAction, ...] = ()
    optimal_amount: int | None = None
    explanation: str = ""
    key_concept: str = ""


@dataclass(frozen=True)
class SessionConfig:
    """Requested shape of one quiz session."""

    question_count: int = 10
    difficulty: DifficultyFilter = "beginner"
    street_filter: StreetFilter = "all"
    topics: tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionResult:
    """Outcome of one answered question."""

    scenario_id: str
    player_action: ActionType
    is_correct: bool
    xp_earned: int
    player_amount: int | None = None


@dataclass
class Session:
    """Ephemeral state of the quiz session in progress."""

    id: str
    config: SessionConfig
    started_at: str
    results: list[SessionResult] = field(default_factory=list)
    current_question_index: int = 0
    streak: int = 0
    completed: bool = False


@dataclass
class StatLine:
    """Answered/correct counters for one breakdown key."""

    answered: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> int:
        """Return rounded accuracy percentage, 0 when nothing was answered."""
        if self.answered <= 0:
            return 0
        return round_half_up(100 * self.correct / self.answered)


def _stat_table(keys: tuple[str, ...]) -> dict[str, StatLine]:
    return {key: StatLine() for key in keys}


@dataclass
class PlayerStats:
    """Aggregate answer statistics across all sessions."""

    total_questions_answered: int = 0
    total_correct: int = 0
    best_streak: int = 0
    total_sessions: int = 0
    by_difficulty: dict[str, StatLine] = field(default_factory=lambda: _stat_table(DIFFICULTIES))
    by_street: dict[str, StatLine] = field(default_factory=lambda: _stat_table(STREETS))
    by_action: dict[str, StatLine] = field(default_factory=lambda: _stat_table(ACTIONS))

    @property
    def accuracy(self) -> int:
        """Return overall rounded accuracy percentage."""
        return StatLine(self.total_questions_answered, self.total_correct).accuracy


@dataclass
class PlayerProgress:
    """Long-lived player progression state."""

    xp: int = 0
    level: int = 1
    achievements: list[str] = field(default_factory=list)
    stats: PlayerStats = field(default_factory=PlayerStats)
    unlocked_difficulties: list[Difficulty] = field(default_factory=lambda: ["beginner"])


@dataclass
class PlayerSettings:
    """Persisted player preferences."""

    default_session_length: int = 10
    default_difficulty: DifficultyFilter = "beginner"
    street_filter: StreetFilter = "all"
    topics: tuple[str, ...] = ()
    sound_enabled: bool = True
    reduced_motion: bool = False

    def session_config(self) -> SessionConfig:
        """Build the default session config from these preferences."""
        return SessionConfig(
            question_count=self.default_session_length,
            difficulty=self.default_difficulty,
            street_filter=self.street_filter,
            topics=tuple(self.topics),
        )


@dataclass(frozen=True)
class Achievement:
    """Unlocked achievement record queued for notification."""

    id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    requirement: int
    unlocked_at: str | None = None
