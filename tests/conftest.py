"""Test setup for docia."""

from __future__ import annotations

from pathlib import Path

import pytest

from docia.config import load_config


class ProjectFixture:
    """A throwaway docia project rooted in a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def config(self, config_file: str | None = None):
        return load_config(self.root, config_file)

    def read_output(self, relative: str) -> str:
        return (self.root / "dist" / relative).read_text(encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> ProjectFixture:
    """Empty project directory using the default layout (book/ → dist/)."""
    return ProjectFixture(tmp_path)


@pytest.fixture
def two_chapter_project(project: ProjectFixture) -> ProjectFixture:
    """Intro (README.md) and Guide (guide.md), the guide linking back to the intro."""
    project.write(
        "book/SUMMARY.md",
        "# Summary\n\n- [Intro](README.md)\n- [Guide](guide.md)\n",
    )
    project.write("book/README.md", "# Intro\n\nWelcome to the book.\n")
    project.write(
        "book/guide.md",
        "# Guide\n\nGo back to the [intro](README.md#top).\n",
    )
    return project
