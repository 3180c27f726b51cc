"""Achievement registry and unlock evaluation.

Achievements are stateless predicates over the current stats and progress.
They are re-evaluated after every change, so a single update that crosses
several thresholds unlocks every achievement it satisfies.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass

from .models import Achievement, AchievementCategory, PlayerProgress, PlayerStats, round_half_up

Measure = Callable[[PlayerStats, PlayerProgress], int]


@dataclass(frozen=True)
class AchievementDefinition:
    """Static definition of one unlockable achievement."""

    id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    requirement: int
    measure: Measure

    def check_unlock(self, stats: PlayerStats, progress: PlayerProgress) -> bool:
        """Return whether the achievement is currently satisfied."""
        return self.measure(stats, progress) >= self.requirement


@dataclass(frozen=True)
class AchievementProgress:
    """Display progress toward one achievement."""

    current: int
    target: int
    percentage: int


@dataclass(frozen=True)
class AchievementStatus:
    """One registry entry with unlock state and progress."""

    definition: AchievementDefinition
    unlocked: bool
    progress: AchievementProgress


def _answered(stats: PlayerStats, progress: PlayerProgress) -> int:
    return stats.total_questions_answered


def _correct(stats: PlayerStats, progress: PlayerProgress) -> int:
    return stats.total_correct


def _streak(stats: PlayerStats, progress: PlayerProgress) -> int:
    return stats.best_streak


def _sessions(stats: PlayerStats, progress: PlayerProgress) -> int:
    return stats.total_sessions


def _level(stats: PlayerStats, progress: PlayerProgress) -> int:
    return progress.level


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # volume
    AchievementDefinition(
        "first-steps", "First Steps", "Complete your first quiz question", "👣", "volume", 1, _answered
    ),
    AchievementDefinition("getting-started", "Getting Started", "Answer 10 questions", "🎯", "volume", 10, _answered),
    AchievementDefinition(
        "dedicated-student", "Dedicated Student", "Answer 50 questions", "📚", "volume", 50, _answered
    ),
    AchievementDefinition("centurion", "Centurion", "Answer 100 questions", "💯", "volume", 100, _answered),
    AchievementDefinition("grinder", "Grinder", "Answer 500 questions", "⚙️", "volume", 500, _answered),
    # accuracy
    AchievementDefinition("sharp-shooter", "Sharp Shooter", "Get 10 correct answers", "🎯", "accuracy", 10, _correct),
    AchievementDefinition(
        "precision-player", "Precision Player", "Get 50 correct answers", "🏹", "accuracy", 50, _correct
    ),
    AchievementDefinition(
        "master-decision", "Master of Decisions", "Get 100 correct answers", "🧠", "accuracy", 100, _correct
    ),
    # streaks
    AchievementDefinition("on-fire", "On Fire", "Get a streak of 5 correct answers", "🔥", "streaks", 5, _streak),
    AchievementDefinition(
        "hot-streak", "Hot Streak", "Get a streak of 10 correct answers", "🌟", "streaks", 10, _streak
    ),
    AchievementDefinition(
        "unstoppable", "Unstoppable", "Get a streak of 15 correct answers", "💫", "streaks", 15, _streak
    ),
    AchievementDefinition(
        "legendary", "Legendary", "Get a streak of 20 correct answers", "👑", "streaks", 20, _streak
    ),
    # milestones
    AchievementDefinition("level-5", "Rising Star", "Reach level 5", "⭐", "milestones", 5, _level),
    AchievementDefinition(
        "level-10",
        "Expert Unlocked",
        "Reach level 10 and unlock Expert difficulty",
        "🎖️",
        "milestones",
        10,
        _level,
    ),
    AchievementDefinition("level-15", "Poker Pro", "Reach level 15", "🏆", "milestones", 15, _level),
    AchievementDefinition("level-20", "Grand Master", "Reach level 20", "👑", "milestones", 20, _level),
    AchievementDefinition(
        "session-master", "Session Master", "Complete 10 quiz sessions", "📋", "milestones", 10, _sessions
    ),
)

_BY_ID: dict[str, AchievementDefinition] = {definition.id: definition for definition in ACHIEVEMENTS}


def check_newly_unlocked(
    stats: PlayerStats, progress: PlayerProgress, already_unlocked: Collection[str]
) -> list[AchievementDefinition]:
    """Return satisfied achievements not yet unlocked, in registry order."""
    unlocked = set(already_unlocked)
    return [
        definition
        for definition in ACHIEVEMENTS
        if definition.id not in unlocked and definition.check_unlock(stats, progress)
    ]


def progress_for(
    definition: AchievementDefinition, stats: PlayerStats, progress: PlayerProgress
) -> AchievementProgress:
    """Return current/target progress, with percentage clamped to 0-100."""
    current = definition.measure(stats, progress)
    target = definition.requirement
    percentage = max(0, min(100, round_half_up(100 * current / target)))
    return AchievementProgress(current=current, target=target, percentage=percentage)


def get_achievement(achievement_id: str) -> AchievementDefinition | None:
    """Get definition by id."""
    return _BY_ID.get(achievement_id)


def achievements_by_category(category: str) -> list[AchievementDefinition]:
    """Return definitions in one category, in registry order."""
    return [definition for definition in ACHIEVEMENTS if definition.category == category]


def achievements_with_status(
    stats: PlayerStats, progress: PlayerProgress, unlocked_ids: Iterable[str]
) -> list[AchievementStatus]:
    """Return every definition with its unlock flag and progress."""
    unlocked = set(unlocked_ids)
    return [
        AchievementStatus(
            definition=definition,
            unlocked=definition.id in unlocked,
            progress=progress_for(definition, stats, progress),
        )
        for definition in ACHIEVEMENTS
    ]


def to_achievement(definition: AchievementDefinition, unlocked_at: str | None = None) -> Achievement:
    """Convert a definition to a notification record."""
    return Achievement(
        id=definition.id,
        title=definition.title,
        description=definition.description,
        icon=definition.icon,
        category=definition.category,
        requirement=definition.requirement,
        unlocked_at=unlocked_at,
    )
