"""Tests for the search index, SEO artifacts and page layout."""

from __future__ import annotations

import json

import pytest

from docia.bundle import ClientBundle
from docia.layout import build_page_description, encode_path_for_href, render_page
from docia.renderer import Heading
from docia.search import compact_text, create_search_entry, write_search_index
from docia.seo import absolute_url, build_llms_txt, build_robots_txt, write_seo_artifacts
from docia.summary import build_summary_graph

OUTLINE = (
    "- [Intro](README.md)\n"
    "- Guides\n"
    "  - [Setup](guides/setup.md)\n"
    "  - [Project site](https://example.org)\n"
)


@pytest.fixture
def book(project):
    def make(yaml_text: str = ""):
        if yaml_text:
            project.write("docia.yaml", yaml_text)
        config = project.config()
        config.out_dir.mkdir(parents=True, exist_ok=True)
        graph = build_summary_graph(OUTLINE, config.src_dir, config.pretty_urls)
        return config, graph

    return make


class TestSearchIndex:
    def test_compact_text(self) -> None:
        assert compact_text("  a\n\n b\tc ") == "a b c"
        long = compact_text("word " * 2000)
        assert len(long) == 4000
        assert long.endswith("...")

    def test_entry_shape(self) -> None:
        entry = create_search_entry("chapter-1", " Intro ", "/", "README.md", "Hello\nworld")
        assert entry == {
            "id": "chapter-1",
            "title": "Intro",
            "routePath": "/",
            "sourcePath": "README.md",
            "text": "Hello world",
        }

    def test_written_document(self, tmp_path) -> None:
        entries = [create_search_entry("a", "Ünïcode", "/", "README.md", "text")]
        assert write_search_index(tmp_path, entries) == "search-index.json"

        raw = (tmp_path / "search-index.json").read_text(encoding="utf-8")
        assert "Ünïcode" in raw
        payload = json.loads(raw)
        assert payload["version"] == 1
        assert payload["generatedAt"].endswith("Z")
        assert payload["pages"] == entries


class TestSeo:
    """sitemap.xml, robots.txt and llms.txt."""

    def test_without_site_url(self, book) -> None:
        config, graph = book()
        assert absolute_url(config, "/guide/") is None
        assert write_seo_artifacts(config, graph) == ["robots.txt", "llms.txt"]
        assert not (config.out_dir / "sitemap.xml").exists()
        assert (config.out_dir / "robots.txt").read_text() == "User-agent: *\nAllow: /\n"

    def test_with_site_url_and_base_path(self, book) -> None:
        config, graph = book("basePath: /docs\nsite:\n  url: https://example.com/\n")
        emitted = write_seo_artifacts(config, graph)
        assert emitted == ["sitemap.xml", "robots.txt", "llms.txt"]

        sitemap = (config.out_dir / "sitemap.xml").read_text()
        assert "<loc>https://example.com/docs/</loc>" in sitemap
        assert "<loc>https://example.com/docs/guides/setup/</loc>" in sitemap
        assert "example.org" not in sitemap

        robots = (config.out_dir / "robots.txt").read_text()
        assert robots.endswith("Sitemap: https://example.com/docs/sitemap.xml\n")

    def test_site_url_path_prefix_is_kept(self, book) -> None:
        config, _ = book("site:\n  url: https://example.com/handbook\n")
        assert absolute_url(config, "/guide/") == "https://example.com/handbook/guide/"

    def test_robots_txt(self) -> None:
        assert build_robots_txt("https://x.dev/sitemap.xml").splitlines()[-1] == (
            "Sitemap: https://x.dev/sitemap.xml"
        )

    def test_llms_txt(self, book) -> None:
        config, graph = book("site:\n  title: Handbook\n  description: All the things\n")
        text = build_llms_txt(config, graph)
        lines = text.splitlines()
        assert lines[0] == "# Handbook"
        assert "> All the things" in lines
        assert "- [Intro](/index.html.md): Markdown source for /" in lines
        assert "- [Setup](/guides/setup/index.html.md): Markdown source for /guides/setup/" in lines
        assert "## Optional" in lines


class TestLayout:
    """Full page documents."""

    def render(self, book, yaml_text: str = "", **kwargs):
        config, graph = book(yaml_text)
        chapter = graph.chapter_by_source_path["guides/setup.md"]
        bundle = ClientBundle(script_href="/assets/main-x.js", stylesheet_href="/assets/styles-x.css")
        headings = [
            Heading(1, "setup", "Setup"),
            Heading(2, "install", "Install <it>"),
            Heading(4, "deep", "Deep"),
        ]
        return render_page(config, graph, chapter, "<p>body</p>", headings, "About setup", bundle, **kwargs)

    def test_document(self, book) -> None:
        page = self.render(book)
        assert "<title>Setup | Documentation</title>" in page
        assert '<meta name="description" content="About setup">' in page
        assert '<link rel="alternate" type="text/markdown" href="/guides/setup/index.html.md">' in page
        assert '<link rel="stylesheet" href="/assets/styles-x.css">' in page
        assert "<p>body</p>" in page
        assert 'rel="canonical"' not in page

    def test_sidebar_and_pager(self, book) -> None:
        page = self.render(book)
        assert '<a href="/guides/setup/" aria-current="page">Setup</a>' in page
        assert '<span class="docia-section-label">Guides</span>' in page
        assert 'href="https://example.org" rel="noopener" target="_blank"' in page
        assert '<a class="prev" rel="prev" href="/">← Intro</a>' in page
        assert 'class="next"' not in page

    def test_toc_only_lists_h2_h3(self, book) -> None:
        page = self.render(book)
        assert '<a href="#install">Install &lt;it&gt;</a>' in page
        assert 'href="#setup"' not in page
        assert 'href="#deep"' not in page

    def test_base_path_and_canonical(self, book) -> None:
        page = self.render(book, "basePath: /docs\nsite:\n  url: https://example.com\n", page_title="Custom")
        assert "<title>Custom | Documentation</title>" in page
        assert 'data-index="/docs/search-index.json" data-base="/docs"' in page
        assert '<link rel="canonical" href="https://example.com/docs/guides/setup/">' in page


def test_page_description() -> None:
    assert build_page_description("  short  ") == "short"
    description = build_page_description("x" * 500)
    assert len(description) == 220
    assert description.endswith("...")


def test_encode_path_for_href() -> None:
    assert encode_path_for_href("my guide/\u00fc\u00f1\u00ef.md") == "my%20guide/%C3%BC%C3%B1%C3%AF.md"
    assert encode_path_for_href("plain/n.md") == "plain/n.md"
