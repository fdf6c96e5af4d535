"""Shared test fixtures for Monoguard."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from monoguard.graph.project import Project

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@pytest.fixture()
def make_project() -> Callable[..., Project]:
    """Build an in-memory project from ``cwd -> manifest`` keyword data."""

    def _make(
        manifests: dict[str, dict[str, Any]],
        packages: dict[str, dict[str, Any]] | None = None,
    ) -> Project:
        return Project(manifests, packages=packages)

    return _make


@pytest.fixture()
def tmp_monorepo(tmp_path: Path) -> Path:
    """Create a small monorepo on disk: a root plus ``packages/app`` and ``packages/ui``."""
    write_json(
        tmp_path / "package.json",
        {"name": "root", "private": True, "workspaces": ["packages/*"]},
    )
    write_json(
        tmp_path / "packages" / "app" / "package.json",
        {
            "name": "app",
            "version": "1.0.0",
            "dependencies": {"ui": "^1.0.0", "react": "^17.0.0"},
        },
    )
    write_json(
        tmp_path / "packages" / "ui" / "package.json",
        {
            "name": "ui",
            "version": "1.0.0",
            "dependencies": {"react": "^18.2.0"},
            "devDependencies": {"left-pad": "^1.3.0"},
        },
    )
    return tmp_path
