"""Tests for the SUMMARY.md navigation graph builder."""

from __future__ import annotations

from pathlib import Path

import pytest

from docia.errors import GraphParseError
from docia.summary import (
    ChapterEntry,
    LinkEntry,
    SectionEntry,
    build_summary_graph,
    load_summary_graph,
    to_output_path,
    to_route_path,
)

ROOT = Path("/book")


def build(text: str, pretty_urls: bool = True):
    return build_summary_graph(text, ROOT, pretty_urls)


class TestRoutes:
    """Route and output path derivation."""

    def test_pretty_urls(self) -> None:
        assert to_route_path("guide.md", True) == "/guide/"
        assert to_output_path("guide.md", True) == "guide/index.html"

    def test_flat_urls(self) -> None:
        assert to_route_path("guide.md", False) == "/guide.html"
        assert to_output_path("guide.md", False) == "guide.html"

    @pytest.mark.parametrize("pretty", [True, False])
    def test_root_readme_collapses_to_index(self, pretty: bool) -> None:
        assert to_output_path("README.md", pretty) == "index.html"
        assert to_route_path("README.md", pretty) == ("/" if pretty else "/index.html")

    def test_nested_readme_is_directory_index(self) -> None:
        assert to_route_path("guides/readme.md", True) == "/guides/"
        assert to_output_path("guides/README.md", True) == "guides/index.html"
        assert to_route_path("guides/README.markdown", False) == "/guides.html"

    def test_readme_only_stripped_as_whole_segment(self) -> None:
        assert to_route_path("NOTREADME.md", True) == "/NOTREADME/"


class TestStructure:
    """Tree shape, entry kinds and chapter ordering."""

    def test_parses_chapters_and_adjacency(self) -> None:
        graph = build(
            "# Summary\n\n"
            "- [Intro](README.md)\n"
            "- Guides\n"
            "  - [Quickstart](guides/quickstart.md)\n"
            "  - [Advanced](guides/advanced.md)\n"
        )

        assert [c.source_path for c in graph.chapters] == [
            "README.md",
            "guides/quickstart.md",
            "guides/advanced.md",
        ]
        assert [c.route_path for c in graph.chapters] == [
            "/",
            "/guides/quickstart/",
            "/guides/advanced/",
        ]
        assert [c.order for c in graph.chapters] == [0, 1, 2]
        for i, chapter in enumerate(graph.chapters):
            expected_next = graph.chapters[i + 1].id if i + 1 < len(graph.chapters) else None
            expected_prev = graph.chapters[i - 1].id if i > 0 else None
            assert chapter.next_chapter_id == expected_next
            assert chapter.previous_chapter_id == expected_prev
        assert graph.first_chapter_id == graph.chapters[0].id
        assert graph.last_chapter_id == graph.chapters[-1].id

    def test_entry_kinds_depth_and_parents(self) -> None:
        graph = build(
            "- Reference\n"
            "  - [API](api.md)\n"
            "    - [Website](https://example.com)\n"
            "    - [Spec PDF](files/spec.pdf)\n"
        )

        (section,) = graph.entries
        assert isinstance(section, SectionEntry)
        assert section.depth == 0 and section.parent_id is None

        (chapter,) = section.children
        assert isinstance(chapter, ChapterEntry)
        assert chapter.depth == 1 and chapter.parent_id == section.id

        website, pdf = chapter.children
        assert isinstance(website, LinkEntry) and website.external
        assert isinstance(pdf, LinkEntry) and not pdf.external
        assert website.depth == 2 and website.parent_id == chapter.id
        assert graph.entry_by_id[pdf.id] is pdf

    def test_chapter_fields(self) -> None:
        graph = build("- [Setup](./guides/setup.md#install)\n", pretty_urls=False)
        chapter = graph.chapters[0]
        assert chapter.href == "./guides/setup.md#install"
        assert chapter.source_path == "guides/setup.md"
        assert chapter.source_absolute_path == ROOT / "guides/setup.md"
        assert chapter.route_path == "/guides/setup.html"
        assert chapter.output_path == "guides/setup.html"
        assert chapter.line == 1
        assert graph.chapter_by_source_path["guides/setup.md"] is chapter

    def test_four_space_indentation(self) -> None:
        graph = build(
            "- [Commands](commands/overview.md)\n"
            "    - [run](commands/run.md)\n"
            "    - [build](commands/build.md)\n"
        )
        assert len(graph.chapters) == 3
        assert len(graph.entries) == 1
        assert len(graph.entries[0].children) == 2

    def test_tabs_expand_to_nested_items(self) -> None:
        graph = build("- [A](a.md)\n\t- [B](b.md)\n\t\t- [C](c.md)\n")
        assert [c.depth for c in graph.chapters] == [0, 1, 2]

    def test_dedent_returns_to_matching_ancestor(self) -> None:
        graph = build(
            "- [A](a.md)\n"
            "  - [B](b.md)\n"
            "    - [C](c.md)\n"
            "  - [D](d.md)\n"
            "- [E](e.md)\n"
        )
        by_path = graph.chapter_by_source_path
        assert by_path["d.md"].parent_id == by_path["a.md"].id
        assert by_path["e.md"].parent_id is None
        assert [c.source_path for c in graph.chapters] == ["a.md", "b.md", "c.md", "d.md", "e.md"]

    def test_all_bullet_markers_and_non_list_lines(self) -> None:
        graph = build("Intro text\n\n* [A](a.md)\n+ [B](b.md)\n- [C](c.md)\n---\n")
        assert len(graph.chapters) == 3

    def test_deep_nesting(self) -> None:
        lines = [f"{'  ' * depth}- [P{depth}](p{depth}.md)" for depth in range(300)]
        graph = build("\n".join(lines))
        assert len(graph.chapters) == 300
        assert graph.chapters[-1].depth == 299


class TestErrors:
    """Outlines that must be rejected."""

    def test_empty_outline(self) -> None:
        with pytest.raises(GraphParseError):
            build("# Summary\n\nNothing here.\n")

    def test_outline_without_chapters(self) -> None:
        with pytest.raises(GraphParseError, match="chapters"):
            build("- Section\n- [Site](https://example.com)\n")

    def test_missing_title(self) -> None:
        with pytest.raises(GraphParseError, match="line 2: missing title") as info:
            build("- [A](a.md)\n- [ ](b.md)\n")
        assert info.value.line == 2

    def test_missing_href(self) -> None:
        with pytest.raises(GraphParseError, match="missing href"):
            build("- [A]()\n")

    def test_indentation_without_parent(self) -> None:
        with pytest.raises(GraphParseError, match="line 1"):
            build("  - [A](a.md)\n")

    def test_duplicate_chapter_paths(self) -> None:
        with pytest.raises(GraphParseError, match="First defined at line 1") as info:
            build("- [A](a.md)\n- [Again](./a.md#x)\n")
        assert info.value.line == 2

    @pytest.mark.parametrize("href", ["../secret.md", "a/../../secret.md", "/../secret.md"])
    def test_traversal_is_rejected(self, href: str) -> None:
        with pytest.raises(GraphParseError, match="outside source dir"):
            build(f"- [Bad]({href})\n")


def test_load_summary_graph_reads_source_dir(two_chapter_project) -> None:
    config = two_chapter_project.config()
    graph = load_summary_graph(config)
    assert graph.summary_path == config.src_dir / "SUMMARY.md"
    assert [c.title for c in graph.chapters] == ["Intro", "Guide"]


def test_load_summary_graph_requires_summary(project) -> None:
    project.write("book/README.md", "# Hi\n")
    with pytest.raises(GraphParseError, match="Could not find SUMMARY.md"):
        load_summary_graph(project.config())
