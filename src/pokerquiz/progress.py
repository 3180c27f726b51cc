"""Persistence for player progress and settings.

The quiz service saves one state document after every mutation and loads it
at startup. Stores only move documents; they never interpret progress.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, cast

from .leveling import level_for_xp, unlocked_difficulties
from .models import (
    ACTIONS,
    DIFFICULTIES,
    DIFFICULTY_FILTERS,
    STREET_FILTERS,
    STREETS,
    Difficulty,
    DifficultyFilter,
    PlayerProgress,
    PlayerSettings,
    PlayerStats,
    StatLine,
    StreetFilter,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
STATE_FORMAT_VERSION = 1


@dataclass
class StateDocument:
    """Everything persisted between runs."""

    progress: PlayerProgress = field(default_factory=PlayerProgress)
    settings: PlayerSettings = field(default_factory=PlayerSettings)


class StateStore(Protocol):
    """Persistence collaborator used by the quiz service."""

    def load(self) -> StateDocument | None:
        """Return the saved document, or None when nothing was saved yet."""
        ...

    def save(self, document: StateDocument) -> None:
        """Persist the document, replacing any previous one."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...


class MemoryStateStore:
    """Keeps the serialized document in memory."""

    def __init__(self, payload: dict[str, object] | None = None) -> None:
        self.payload = payload
        self.save_count = 0

    def load(self) -> StateDocument | None:
        if self.payload is None:
            return None
        return load_state(self.payload)

    def save(self, document: StateDocument) -> None:
        self.payload = dump_state(document)
        self.save_count += 1

    def close(self) -> None:
        return None


class SqliteStateStore:
    """SQLite-backed state document store."""

    def __init__(self, db_path: Path | str) -> None:
        """Initialize database and schema."""
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        else:
            target = db_path
        self._conn = sqlite3.connect(target)
        self._conn.row_factory = sqlite3.Row
        self._apply_migrations()

    def _apply_migrations(self) -> None:
        """Apply forward-only schema migrations to latest version."""
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")

        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """)

        for version in range(current + 1, SCHEMA_VERSION + 1):
            if version == 1:
                self._migrate_to_v1()
            with self._conn:
                self._conn.execute(f"PRAGMA user_version = {version}")
                self._conn.execute(
                    "INSERT OR REPLACE INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, datetime.now(UTC).isoformat()),
                )
            logger.debug("Applied state schema migration %d", version)

    def _migrate_to_v1(self) -> None:
        """Create the single-row state document table."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS app_state (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    document TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """)

    def load(self) -> StateDocument | None:
        """Return the stored document if present."""
        row = self._conn.execute("SELECT document FROM app_state WHERE id = 1").fetchone()
        if row is None:
            return None
        return load_state(json.loads(str(row["document"])))

    def save(self, document: StateDocument) -> None:
        """Replace the stored document."""
        payload = json.dumps(dump_state(document))
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO app_state (id, document, updated_at)
                VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    document = excluded.document,
                    updated_at = excluded.updated_at
                """,
                (payload, datetime.now(UTC).isoformat()),
            )

    def last_saved_at(self) -> str | None:
        """Return the timestamp of the latest save."""
        row = self._conn.execute("SELECT updated_at FROM app_state WHERE id = 1").fetchone()
        if row is None:
            return None
        return str(row["updated_at"])

    def close(self) -> None:
        """Close db connection."""
        self._conn.close()

    def __del__(self) -> None:  # pragma: no cover
        """Best-effort connection cleanup."""
        try:
            self.close()
        except Exception:
            pass


def export_state(document: StateDocument, export_path: Path | str) -> Path:
    """Write a state document to a JSON file."""
    path = Path(export_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = dump_state(document)
    payload["exported_at"] = datetime.now(UTC).isoformat()
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def import_state(import_path: Path | str) -> StateDocument:
    """Read a state document from a JSON export file."""
    raw: object = json.loads(Path(import_path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Import file root must be a JSON object.")
    return load_state(cast(dict[str, object], raw))


def dump_state(document: StateDocument) -> dict[str, object]:
    """Serialize a state document to JSON-compatible data."""
    progress = document.progress
    stats = progress.stats
    settings = document.settings
    return {
        "format_version": STATE_FORMAT_VERSION,
        "progress": {
            "xp": progress.xp,
            "level": progress.level,
            "achievements": list(progress.achievements),
            "unlocked_difficulties": list(progress.unlocked_difficulties),
            "stats": {
                "total_questions_answered": stats.total_questions_answered,
                "total_correct": stats.total_correct,
                "best_streak": stats.best_streak,
                "total_sessions": stats.total_sessions,
                "by_difficulty": _dump_table(stats.by_difficulty),
                "by_street": _dump_table(stats.by_street),
                "by_action": _dump_table(stats.by_action),
            },
        },
        "settings": {
            "default_session_length": settings.default_session_length,
            "default_difficulty": settings.default_difficulty,
            "street_filter": settings.street_filter,
            "topics": list(settings.topics),
            "sound_enabled": settings.sound_enabled,
            "reduced_motion": settings.reduced_motion,
        },
    }


def load_state(raw: dict[str, object]) -> StateDocument:
    """Deserialize a state document, coercing malformed fields to defaults."""
    format_version = _coerce_int(raw.get("format_version", 0))
    if format_version is None:
        raise ValueError("State document has invalid format_version.")
    if format_version > STATE_FORMAT_VERSION:
        raise ValueError(
            f"State document format version {format_version} is newer than supported {STATE_FORMAT_VERSION}."
        )
    return StateDocument(
        progress=_load_progress(_as_dict(raw.get("progress"))),
        settings=_load_settings(_as_dict(raw.get("settings"))),
    )


def _dump_table(table: dict[str, StatLine]) -> dict[str, dict[str, int]]:
    return {key: {"answered": line.answered, "correct": line.correct} for key, line in table.items()}


def _load_progress(raw: dict[str, object]) -> PlayerProgress:
    """Build progress from raw data; level is always derived from xp."""
    xp = _coerce_int(raw.get("xp", 0), default=0) or 0
    if xp < 0:
        logger.warning("Persisted xp %d is negative; flooring at 0", xp)
        xp = 0

    achievements: list[str] = []
    for item in _as_list(raw.get("achievements")):
        if isinstance(item, str) and item and item not in achievements:
            achievements.append(item)

    level = level_for_xp(xp)
    stored_level = _coerce_int(raw.get("level", level))
    if stored_level is not None and stored_level != level:
        logger.warning("Persisted level %d does not match xp %d; using level %d", stored_level, xp, level)

    unlocked: list[Difficulty] = ["beginner"]
    for item in _as_list(raw.get("unlocked_difficulties")):
        if isinstance(item, str) and item in DIFFICULTIES and item not in unlocked:
            unlocked.append(cast(Difficulty, item))
    for difficulty in unlocked_difficulties(level):
        if difficulty not in unlocked:
            logger.warning("Unlocking %s to match level %d", difficulty, level)
            unlocked.append(difficulty)

    return PlayerProgress(
        xp=xp,
        level=level,
        achievements=achievements,
        stats=_load_stats(_as_dict(raw.get("stats"))),
        unlocked_difficulties=unlocked,
    )


def _load_stats(raw: dict[str, object]) -> PlayerStats:
    stats = PlayerStats(
        total_questions_answered=_non_negative(raw.get("total_questions_answered")),
        total_correct=_non_negative(raw.get("total_correct")),
        best_streak=_non_negative(raw.get("best_streak")),
        total_sessions=_non_negative(raw.get("total_sessions")),
    )
    _load_table(stats.by_difficulty, raw.get("by_difficulty"), DIFFICULTIES)
    _load_table(stats.by_street, raw.get("by_street"), STREETS)
    _load_table(stats.by_action, raw.get("by_action"), ACTIONS)
    return stats


def _load_table(target: dict[str, StatLine], raw: object, keys: tuple[str, ...]) -> None:
    rows = _as_dict(raw)
    for key in keys:
        row = _as_dict(rows.get(key))
        answered = _non_negative(row.get("answered"))
        correct = min(_non_negative(row.get("correct")), answered)
        target[key] = StatLine(answered=answered, correct=correct)


def _load_settings(raw: dict[str, object]) -> PlayerSettings:
    defaults = PlayerSettings()
    length = _coerce_int(raw.get("default_session_length"), default=None)
    difficulty = raw.get("default_difficulty")
    street_filter = raw.get("street_filter")
    topics = tuple(item for item in _as_list(raw.get("topics")) if isinstance(item, str) and item)
    sound_enabled = raw.get("sound_enabled")
    reduced_motion = raw.get("reduced_motion")
    return PlayerSettings(
        default_session_length=length if length is not None and length > 0 else defaults.default_session_length,
        default_difficulty=(
            cast(DifficultyFilter, difficulty) if difficulty in DIFFICULTY_FILTERS else defaults.default_difficulty
        ),
        street_filter=cast(StreetFilter, street_filter) if street_filter in STREET_FILTERS else defaults.street_filter,
        topics=topics,
        sound_enabled=sound_enabled if isinstance(sound_enabled, bool) else defaults.sound_enabled,
        reduced_motion=reduced_motion if isinstance(reduced_motion, bool) else defaults.reduced_motion,
    )


def _as_dict(value: object) -> dict[str, Any]:
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    return {}


def _as_list(value: object) -> list[object]:
    if isinstance(value, list):
        return cast(list[object], value)
    return []


def _non_negative(value: object) -> int:
    return max(0, _coerce_int(value, default=0) or 0)


def _coerce_int(value: object, default: int | None = None) -> int | None:
    """Coerce value to int for persisted data normalization."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default
