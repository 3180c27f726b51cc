import random
from pathlib import Path
from typing import Any

import pytest

import pokerquiz.main as main
from pokerquiz.progress import MemoryStateStore
from pokerquiz.service import QuizService


@pytest.fixture
def shell_service(monkeypatch: Any) -> QuizService:
    service = QuizService(MemoryStateStore(), rng=random.Random(3))
    service.update_settings(default_session_length=2)
    monkeypatch.setattr(main, "_service", lambda _db_path: service)
    return service


def _play(inputs: list[str]) -> tuple[int, list[str]]:
    scripted = iter(inputs)
    outputs: list[str] = []
    code = main.play_shell(input_fn=lambda _: next(scripted), print_fn=outputs.append)
    return code, outputs


def test_run_enters_play_shell(monkeypatch: Any, tmp_path: Path) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(main, "play_shell", lambda **kwargs: captured.update(kwargs) or 0)
    assert main.run(["--db", str(tmp_path / "p.db")]) == 0
    assert captured["db_path"] == tmp_path / "p.db"


def test_run_reads_db_path_from_environment(monkeypatch: Any, tmp_path: Path) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setenv("POKERQUIZ_DB", str(tmp_path / "env.db"))
    monkeypatch.setattr(main, "play_shell", lambda **kwargs: captured.update(kwargs) or 0)
    assert main.run([]) == 0
    assert captured["db_path"] == tmp_path / "env.db"


def test_service_factory_uses_sqlite(tmp_path: Path) -> None:
    service = main._service(tmp_path / "data" / "progress.db")
    try:
        assert service.progress.xp == 0
    finally:
        service.close()
    assert (tmp_path / "data" / "progress.db").exists()


def test_play_shell_quick_play_session(shell_service: QuizService) -> None:
    code, outputs = _play(["1", "1", "1", "q"])
    assert code == 0
    assert shell_service.progress.stats.total_questions_answered == 2
    assert shell_service.progress.stats.total_sessions == 1
    assert any("Question 1/2" in line for line in outputs)
    assert any("=== Session Summary ===" in line for line in outputs)
    assert any("Achievement unlocked:" in line and "First Steps" in line for line in outputs)
    assert shell_service.pending_achievements() == []


def test_play_shell_accepts_action_names(shell_service: QuizService) -> None:
    shell_service.update_settings(default_session_length=1, street_filter="preflop")
    code, outputs = _play(["1", "bogus", "fold", "q"])
    assert code == 0
    assert any("Invalid action." in line for line in outputs)
    assert shell_service.progress.stats.total_questions_answered == 1


def test_play_shell_end_session_early(shell_service: QuizService) -> None:
    code, outputs = _play(["1", ":q", "q"])
    assert code == 0
    assert any("Session ended early." in line for line in outputs)
    assert shell_service.progress.stats.total_sessions == 1
    assert shell_service.progress.stats.total_questions_answered == 0


def test_play_shell_invalid_choice_then_quit(shell_service: QuizService) -> None:
    code, outputs = _play(["9", "q"])
    assert code == 0
    assert any("Invalid choice." in line for line in outputs)


def test_difficulty_flow_locked_tier(shell_service: QuizService) -> None:
    code, outputs = _play(["2", "2", "q"])
    assert code == 0
    assert any("locked, unlocks at level 3" in line for line in outputs)
    assert any("Intermediate is locked." in line for line in outputs)
    assert shell_service.session is None


def test_difficulty_flow_starts_session(shell_service: QuizService) -> None:
    shell_service.update_settings(default_session_length=1)
    code, _ = _play(["2", "1", "1", "q"])
    assert code == 0
    session = shell_service.session
    assert session is not None
    assert session.config.difficulty == "beginner"
    assert session.completed is True


def test_difficulty_flow_back_invalid_and_quit(shell_service: QuizService) -> None:
    code, outputs = _play(["2", "b", "2", "x", "2", "q"])
    assert code == 0
    assert any("Invalid choice." in line for line in outputs)


def test_stats_and_achievements_flows(shell_service: QuizService) -> None:
    code, outputs = _play(["3", "4", "q"])
    assert code == 0
    assert any("Questions answered: 0" in line for line in outputs)
    assert any("By street:" in line for line in outputs)
    assert any("=== Achievements (0/17) ===" in line for line in outputs)
    assert any("Session Master" in line for line in outputs)


def test_settings_flow_updates_preferences(shell_service: QuizService) -> None:
    inputs = ["5", "1", "abc", "1", "5", "3", "river2", "3", "postflop", "4", "bluff, river", "5", "b", "q"]
    code, outputs = _play(inputs)
    assert code == 0
    settings = shell_service.settings
    assert settings.default_session_length == 5
    assert settings.street_filter == "postflop"
    assert settings.topics == ("bluff", "river")
    assert settings.sound_enabled is False
    assert any("Enter a positive number." in line for line in outputs)
    assert any("Could not update settings" in line for line in outputs)


def test_settings_flow_quit(shell_service: QuizService) -> None:
    code, _ = _play(["5", "q"])
    assert code == 0


def test_admin_export_and_import(shell_service: QuizService, tmp_path: Path) -> None:
    export_path = tmp_path / "backup.json"
    code, outputs = _play(["6", "1", str(export_path), "2", str(export_path), "b", "q"])
    assert code == 0
    assert export_path.exists()
    assert any("Exported progress to" in line for line in outputs)
    assert any("Imported progress." in line for line in outputs)


def test_admin_path_validation_and_failures(shell_service: QuizService, tmp_path: Path) -> None:
    missing = tmp_path / "missing.json"
    code, outputs = _play(["6", "1", "", "2", "", "2", str(missing), "9", "q"])
    assert code == 0
    assert sum(1 for line in outputs if "File path is required." in line) == 2
    assert any("Import failed" in line for line in outputs)
    assert any("Invalid choice." in line for line in outputs)


def test_admin_reset_requires_confirmation(shell_service: QuizService) -> None:
    shell_service.start_session()
    shell_service.next_scenario()
    scenario = shell_service.current_scenario
    assert scenario is not None
    shell_service.submit_answer(scenario.optimal_action)

    code, outputs = _play(["6", "3", "no", "3", "YES", "b", "q"])
    assert code == 0
    assert any("Reset cancelled." in line for line in outputs)
    assert any("Progress reset." in line for line in outputs)
    assert shell_service.progress.xp == 0


def test_card_label() -> None:
    assert main._card_label("Th") == "T♥"
    assert main._card_label("As") == "A♠"
    assert main._card_label("9x") == "9x"
