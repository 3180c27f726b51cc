"""Poker decision quiz with XP, levels, and achievements."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]


def _source_checkout_version() -> str | None:
    """Read [project].version from the nearest pyproject.toml when running from source."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        with pyproject.open("rb") as handle:
            project = tomllib.load(handle).get("project", {})
        if project.get("name") != "pokerquiz":
            continue
        found = project.get("version")
        return str(found) if found else None
    return None


def _resolve_version() -> str:
    local = _source_checkout_version()
    if local is not None:
        return local
    try:
        return version("pokerquiz")
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
