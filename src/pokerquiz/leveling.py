"""XP curve, level thresholds, rewards, and difficulty gating."""

from __future__ import annotations

from .models import DIFFICULTIES, Difficulty, round_half_up

# Cumulative XP needed for each level; index 0 is level 1.
LEVEL_THRESHOLDS: tuple[int, ...] = (
    0,
    100,
    250,
    500,
    850,
    1300,
    1900,
    2650,
    3550,
    4600,
    5850,
    7300,
    8950,
    10800,
    12850,
    15100,
    17550,
    20200,
    23050,
    26100,
)
MAX_LEVEL = len(LEVEL_THRESHOLDS)

BASE_XP_CORRECT = 10
BASE_XP_INCORRECT = 2

DIFFICULTY_XP_MULTIPLIER: dict[str, float] = {
    "beginner": 1.0,
    "intermediate": 1.5,
    "advanced": 2.0,
    "expert": 3.0,
}

# (minimum streak, bonus) pairs in ascending order.
STREAK_BONUS_THRESHOLDS: tuple[tuple[int, int], ...] = (
    (3, 5),
    (5, 10),
    (10, 25),
    (15, 50),
    (20, 100),
)

DIFFICULTY_UNLOCK_LEVELS: dict[str, int] = {
    "beginner": 1,
    "intermediate": 3,
    "advanced": 6,
    "expert": 10,
}


def level_for_xp(xp: int) -> int:
    """Return the level reached with a cumulative XP total."""
    level = 1
    for index in range(1, MAX_LEVEL):
        if xp >= LEVEL_THRESHOLDS[index]:
            level = index + 1
        else:
            break
    return min(level, MAX_LEVEL)


def xp_for_level(level: int) -> int:
    """Return the cumulative XP at which a level starts."""
    if level < 1:
        return 0
    if level > MAX_LEVEL:
        return LEVEL_THRESHOLDS[MAX_LEVEL - 1]
    return LEVEL_THRESHOLDS[level - 1]


def xp_to_next_level(xp: int) -> int:
    """Return XP still needed for the next level, 0 at max level."""
    level = level_for_xp(xp)
    if level >= MAX_LEVEL:
        return 0
    return LEVEL_THRESHOLDS[level] - max(0, xp)


def progress_within_level(xp: int) -> int:
    """Return progress through the current level as a 0-100 percentage."""
    level = level_for_xp(xp)
    if level >= MAX_LEVEL:
        return 100
    floor_xp = LEVEL_THRESHOLDS[level - 1]
    span = LEVEL_THRESHOLDS[level] - floor_xp
    gained = max(0, xp - floor_xp)
    return min(100, round_half_up(100 * gained / span))


def level_increased(previous_xp: int, new_xp: int) -> bool:
    """Return whether moving between two XP totals crossed a level threshold."""
    return level_for_xp(new_xp) > level_for_xp(previous_xp)


def streak_bonus(streak: int) -> int:
    """Return the bonus for the highest streak threshold met.

    Bonuses do not stack: a streak of 10 earns the 10-streak bonus only.
    """
    bonus = 0
    for minimum, amount in STREAK_BONUS_THRESHOLDS:
        if streak >= minimum:
            bonus = amount
    return bonus


def compute_xp_reward(was_correct: bool, difficulty: str, streak: int) -> int:
    """Return XP earned for one answer.

    `streak` is the run of correct answers before this one was scored.
    """
    base = BASE_XP_CORRECT if was_correct else BASE_XP_INCORRECT
    xp = round_half_up(base * DIFFICULTY_XP_MULTIPLIER[difficulty])
    if was_correct:
        xp += streak_bonus(streak)
    return xp


def is_difficulty_unlocked(difficulty: str, level: int) -> bool:
    """Return whether a difficulty is playable at a level."""
    return level >= DIFFICULTY_UNLOCK_LEVELS[difficulty]


def unlocked_difficulties(level: int) -> list[Difficulty]:
    """Return all difficulties playable at a level, easiest first."""
    return [difficulty for difficulty in DIFFICULTIES if is_difficulty_unlocked(difficulty, level)]


def next_difficulty_unlock(level: int) -> tuple[Difficulty, int] | None:
    """Return the next locked difficulty and its required level."""
    for difficulty in DIFFICULTIES:
        required = DIFFICULTY_UNLOCK_LEVELS[difficulty]
        if level < required:
            return (difficulty, required)
    return None


def format_xp(xp: int) -> str:
    """Format XP compactly for display."""
    if xp >= 1000:
        return f"{xp / 1000:.1f}k"
    return str(xp)
