from __future__ import annotations

import random
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pokerquiz.progress import MemoryStateStore  # noqa: E402
from pokerquiz.service import QuizService  # noqa: E402


def _tmp_path_fixture() -> Iterator[Path]:
    """Provide a per-test temporary directory under the project at ``.tmp_pytest/``.

    Overrides pytest's builtin ``tmp_path`` so exported files and databases
    stay inside the working tree.
    """
    base = ROOT / ".tmp_pytest"
    base.mkdir(parents=True, exist_ok=True)
    path = base / str(uuid4())
    path.mkdir(parents=True, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        try:
            next(base.iterdir())
        except StopIteration:
            base.rmdir()
        except FileNotFoundError:
            pass


tmp_path = pytest.fixture(name="tmp_path")(_tmp_path_fixture)


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def service(store: MemoryStateStore) -> QuizService:
    """Quiz service over the bundled catalog with a seeded rng."""
    return QuizService(store, rng=random.Random(7))
