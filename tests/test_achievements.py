from pokerquiz import achievements
from pokerquiz.models import ACHIEVEMENT_CATEGORIES, PlayerProgress, PlayerStats


def _ids(definitions: list[achievements.AchievementDefinition]) -> list[str]:
    return [definition.id for definition in definitions]


def test_registry_has_unique_ids_and_known_categories() -> None:
    ids = [definition.id for definition in achievements.ACHIEVEMENTS]
    assert len(ids) == 17
    assert len(set(ids)) == len(ids)
    assert {definition.category for definition in achievements.ACHIEVEMENTS} <= set(ACHIEVEMENT_CATEGORIES)
    assert all(definition.requirement > 0 for definition in achievements.ACHIEVEMENTS)


def test_first_answer_unlocks_first_steps() -> None:
    progress = PlayerProgress()
    progress.stats.total_questions_answered = 1
    assert _ids(achievements.check_newly_unlocked(progress.stats, progress, [])) == ["first-steps"]


def test_check_newly_unlocked_is_idempotent() -> None:
    progress = PlayerProgress(xp=900, level=5)
    progress.stats.total_questions_answered = 12
    progress.stats.total_correct = 10
    first = _ids(achievements.check_newly_unlocked(progress.stats, progress, []))
    assert first == ["first-steps", "getting-started", "sharp-shooter", "level-5"]
    assert achievements.check_newly_unlocked(progress.stats, progress, first) == []


def test_streak_jump_catches_up_every_passed_threshold() -> None:
    stats = PlayerStats(best_streak=2)
    progress = PlayerProgress(stats=stats)
    assert achievements.check_newly_unlocked(stats, progress, []) == []
    stats.best_streak = 12
    assert _ids(achievements.check_newly_unlocked(stats, progress, [])) == ["on-fire", "hot-streak"]


def test_progress_percentage_is_clamped() -> None:
    stats = PlayerStats(best_streak=25)
    progress = PlayerProgress(stats=stats)
    legendary = achievements.get_achievement("legendary")
    assert legendary is not None
    result = achievements.progress_for(legendary, stats, progress)
    assert result.current == 25
    assert result.target == 20
    assert result.percentage == 100

    stats.best_streak = 3
    on_fire = achievements.get_achievement("on-fire")
    assert on_fire is not None
    assert achievements.progress_for(on_fire, stats, progress).percentage == 60


def test_level_achievements_use_progress_level() -> None:
    progress = PlayerProgress(xp=4600, level=10)
    unlocked = _ids(achievements.check_newly_unlocked(progress.stats, progress, []))
    assert unlocked == ["level-5", "level-10"]


def test_get_achievement_unknown_returns_none() -> None:
    assert achievements.get_achievement("nope") is None


def test_achievements_by_category_keeps_registry_order() -> None:
    streaks = _ids(achievements.achievements_by_category("streaks"))
    assert streaks == ["on-fire", "hot-streak", "unstoppable", "legendary"]
    assert achievements.achievements_by_category("unknown") == []


def test_achievements_with_status() -> None:
    progress = PlayerProgress()
    progress.stats.total_sessions = 5
    statuses = achievements.achievements_with_status(progress.stats, progress, ["first-steps"])
    assert len(statuses) == len(achievements.ACHIEVEMENTS)
    by_id = {status.definition.id: status for status in statuses}
    assert by_id["first-steps"].unlocked is True
    assert by_id["session-master"].unlocked is False
    assert by_id["session-master"].progress.percentage == 50


def test_to_achievement_copies_definition() -> None:
    definition = achievements.get_achievement("centurion")
    assert definition is not None
    record = achievements.to_achievement(definition, "2024-01-01T00:00:00+00:00")
    assert record.id == "centurion"
    assert record.requirement == 100
    assert record.unlocked_at == "2024-01-01T00:00:00+00:00"
