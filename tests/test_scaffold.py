"""Tests for project and chapter scaffolding."""

from __future__ import annotations

from pathlib import Path

import pytest

from docia.config import load_config
from docia.errors import DociaError
from docia.scaffold import chapter_path_for, create_chapter, init_project, slugify, title_from_name
from docia.summary import load_summary_graph


class TestNames:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("Getting Started!", "getting-started"), ("  API v2 ", "api-v2"), ("???", "chapter")],
    )
    def test_slugify(self, raw: str, expected: str) -> None:
        assert slugify(raw) == expected

    def test_title_from_name(self) -> None:
        assert title_from_name("getting-started.md") == "Getting Started"
        assert title_from_name("api_reference") == "Api Reference"
        assert title_from_name("  ") == "Documentation"

    def test_chapter_path_for(self) -> None:
        assert chapter_path_for("Advanced Topics/Caching") == "advanced-topics/caching.md"
        assert chapter_path_for("guides/FAQ.md") == "guides/FAQ.md"
        assert chapter_path_for("./notes/../faq.md") == "faq.md"

    @pytest.mark.parametrize("name", ["../outside.md", "guides/../../outside.md", "  ", "/"])
    def test_chapter_path_rejected(self, name: str) -> None:
        with pytest.raises(DociaError):
            chapter_path_for(name)


class TestInit:
    """``init_project`` writes a buildable starter book."""

    def test_scaffold_is_a_valid_book(self, tmp_path: Path) -> None:
        target = tmp_path / "team-handbook"
        written = init_project(target)

        assert {p.relative_to(target).as_posix() for p in written} == {
            "docia.yaml",
            "book/SUMMARY.md",
            "book/README.md",
            "book/getting-started.md",
            "public/.gitkeep",
        }
        config = load_config(target)
        assert config.source == "file"
        assert config.site.title == "Team Handbook"
        assert config.site.description == "Team Handbook documentation built with docia."
        graph = load_summary_graph(config)
        assert [c.source_path for c in graph.chapters] == ["README.md", "getting-started.md"]
        assert (target / "book" / "README.md").read_text(encoding="utf-8").startswith("# Team Handbook\n")

    def test_title_with_quotes_round_trips(self, tmp_path: Path) -> None:
        init_project(tmp_path, title='The "Quoted": Docs', language="de")
        config = load_config(tmp_path)
        assert config.site.title == 'The "Quoted": Docs'
        assert config.site.language == "de"

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        (tmp_path / "book").mkdir()
        (tmp_path / "book" / "README.md").write_text("mine", encoding="utf-8")

        with pytest.raises(DociaError, match="- book/README.md"):
            init_project(tmp_path)
        assert (tmp_path / "book" / "README.md").read_text(encoding="utf-8") == "mine"
        assert not (tmp_path / "docia.yaml").exists()

        init_project(tmp_path, force=True)
        assert (tmp_path / "book" / "README.md").read_text(encoding="utf-8") != "mine"


class TestCreateChapter:
    def test_creates_slugged_file(self, tmp_path: Path) -> None:
        path, added = create_chapter(tmp_path, "Advanced Topics/Caching")
        assert path == tmp_path / "advanced-topics" / "caching.md"
        assert path.read_text(encoding="utf-8") == "# Caching\n\nWrite your chapter content here.\n"
        assert added is False

    def test_existing_chapter_needs_force(self, tmp_path: Path) -> None:
        (tmp_path / "faq.md").write_text("keep", encoding="utf-8")
        with pytest.raises(DociaError, match="already exists"):
            create_chapter(tmp_path, "faq")
        assert (tmp_path / "faq.md").read_text(encoding="utf-8") == "keep"

        create_chapter(tmp_path, "faq", title="Questions", force=True)
        assert (tmp_path / "faq.md").read_text(encoding="utf-8").startswith("# Questions\n")

    def test_outside_source_dir_is_rejected(self, tmp_path: Path) -> None:
        src = tmp_path / "book"
        src.mkdir()
        with pytest.raises(DociaError, match="inside the configured source directory"):
            create_chapter(src, "../escape.md")
        assert not (tmp_path / "escape.md").exists()

    def test_appends_to_summary_once(self, tmp_path: Path) -> None:
        summary = tmp_path / "SUMMARY.md"
        summary.write_text("# Summary\n\n- [Intro](README.md)", encoding="utf-8")

        _, added = create_chapter(tmp_path, "setup", add_to_summary=True)
        assert added is True
        assert summary.read_text(encoding="utf-8") == (
            "# Summary\n\n- [Intro](README.md)\n- [Setup](setup.md)\n"
        )

        _, added = create_chapter(tmp_path, "setup", force=True, add_to_summary=True)
        assert added is False
        assert summary.read_text(encoding="utf-8").count("setup.md") == 1
