"""
Navigation graph builder for docia books.

Parses the book's ``SUMMARY.md`` outline into a tree of entries that is
the single source of truth for everything downstream: which pages are
built, where they are written, which URL they live at and in which order
the reader walks through them.

Outline rules:
  1. Every meaningful line is a list item (``-``, ``*`` or ``+``).
     Anything else (headings, prose, blank lines) is ignored.
  2. ``[Title](path.md)`` items are chapters; ``[Title](https://…)`` or
     links to non-markdown files are plain links; bare text items are
     sections that group their children.
  3. Nesting follows indentation.  Tabs count as ``TAB_WIDTH`` spaces.
  4. Chapter paths must stay inside the source dir and must be unique.

Usage:
    graph = load_summary_graph(config)
    for chapter in graph.chapters:
        print(chapter.order, chapter.route_path)
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from docia.errors import GraphParseError
from docia.paths import (
    is_external_href,
    is_markdown_path,
    normalize_relative,
    split_href,
    strip_markdown_extension,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SUMMARY_FILE_NAME = "SUMMARY.md"
TAB_WIDTH = 2

LIST_ITEM_RE = re.compile(r"^(\s*)[-*+]\s+(.+)$")
LINK_ITEM_RE = re.compile(r"^\[([^\]]*)\]\((.*)\)\s*$")
README_SUFFIX_RE = re.compile(r"(?:^|/)README$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Entry types
# ---------------------------------------------------------------------------

@dataclass(kw_only=True)
class SummaryEntry:
    """Common fields of every outline entry.

    ``children`` is owned by the entry; ``parent_id`` is only a lookup key
    into ``SummaryGraph.entry_by_id``.
    """

    id: str
    title: str
    depth: int
    line: int
    parent_id: str | None
    children: list["SummaryEntry"] = field(default_factory=list)

    kind = "entry"


@dataclass(kw_only=True)
class SectionEntry(SummaryEntry):
    """A non-navigable label grouping its children."""

    kind = "section"


@dataclass(kw_only=True)
class LinkEntry(SummaryEntry):
    """An external URL or a link to something that is not a chapter."""

    href: str
    external: bool

    kind = "link"


@dataclass(kw_only=True)
class ChapterEntry(SummaryEntry):
    """A navigable page backed by one markdown file."""

    href: str
    source_path: str
    source_absolute_path: Path
    route_path: str
    output_path: str
    order: int = -1
    previous_chapter_id: str | None = None
    next_chapter_id: str | None = None

    kind = "chapter"


@dataclass(frozen=True)
class SummaryGraph:
    """The parsed outline plus the indexes derived from it.

    Built once per build and never mutated afterwards.
    """

    summary_path: Path | None
    entries: list[SummaryEntry]
    chapters: list[ChapterEntry]
    chapter_by_source_path: dict[str, ChapterEntry]
    entry_by_id: dict[str, SummaryEntry]
    first_chapter_id: str | None
    last_chapter_id: str | None

    def chapter(self, chapter_id: str | None) -> ChapterEntry | None:
        """Look up a chapter by id (``None`` for missing or non-chapter ids)."""
        if chapter_id is None:
            return None
        entry = self.entry_by_id.get(chapter_id)
        return entry if isinstance(entry, ChapterEntry) else None


@dataclass
class _OutlineItem:
    indent_width: int
    line: int
    title: str
    href: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_source_path(href: str, line: int) -> str:
    """Turn a chapter href into a path relative to the source dir.

    Drops any query/fragment, converts backslashes, strips a single
    leading ``./`` or ``/`` and collapses ``.``/``..`` segments.

    e.g. "./guides/../intro.md#top" → "intro.md"
    """
    path, _, _ = split_href(href.strip())
    path = path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    elif path.startswith("/"):
        path = path[1:]

    normalized = normalize_relative(path)
    if normalized is None:
        raise GraphParseError(
            f"Invalid SUMMARY link at line {line}: path cannot traverse outside source dir.",
            line=line,
        )
    if normalized in ("", "."):
        raise GraphParseError(
            f"Invalid SUMMARY link at line {line}: empty file path.",
            line=line,
        )
    return normalized


def _route_stem(source_path: str) -> str:
    """Source path without extension or trailing README segment.

    'guides/README.md' → 'guides'
    'README.md'        → ''
    'guides/setup.md'  → 'guides/setup'
    """
    stem = strip_markdown_extension(source_path)
    stem = README_SUFFIX_RE.sub("", stem)
    return stem.strip("/")


def to_route_path(source_path: str, pretty_urls: bool) -> str:
    """Browser-facing URL path for a chapter."""
    stem = _route_stem(source_path)
    if pretty_urls:
        return f"/{stem}/" if stem else "/"
    return f"/{stem}.html" if stem else "/index.html"


def to_output_path(source_path: str, pretty_urls: bool) -> str:
    """File path (relative to the output dir) a chapter is written to."""
    stem = _route_stem(source_path)
    if not stem:
        return "index.html"
    if pretty_urls:
        return f"{stem}/index.html"
    return f"{stem}.html"


def parse_outline_items(text: str) -> list[_OutlineItem]:
    """Scan the outline and return every list item in document order."""
    items: list[_OutlineItem] = []

    for index, raw_line in enumerate(text.splitlines()):
        line = index + 1
        m = LIST_ITEM_RE.match(raw_line)
        if m is None:
            continue

        indent = m.group(1).replace("\t", " " * TAB_WIDTH)
        content = m.group(2).strip()
        if not content:
            continue

        link = LINK_ITEM_RE.match(content)
        if link is None:
            items.append(_OutlineItem(len(indent), line, content))
            continue

        title = link.group(1).strip()
        href = link.group(2).strip()
        if not title:
            raise GraphParseError(
                f"Invalid SUMMARY entry at line {line}: missing title.", line=line
            )
        if not href:
            raise GraphParseError(
                f"Invalid SUMMARY entry at line {line}: missing href.", line=line
            )
        items.append(_OutlineItem(len(indent), line, title, href))

    return items


def flatten_chapters(entries: list[SummaryEntry]) -> list[ChapterEntry]:
    """Collect chapters depth-first in document order.

    Uses an explicit stack so deeply nested outlines cannot hit the
    recursion limit.
    """
    chapters: list[ChapterEntry] = []
    stack = list(reversed(entries))
    while stack:
        entry = stack.pop()
        if isinstance(entry, ChapterEntry):
            chapters.append(entry)
        stack.extend(reversed(entry.children))
    return chapters


def _make_entry(
    item: _OutlineItem,
    parent: SummaryEntry | None,
    source_root: Path,
    pretty_urls: bool,
) -> SummaryEntry:
    common = {
        "title": item.title,
        "depth": parent.depth + 1 if parent else 0,
        "line": item.line,
        "parent_id": parent.id if parent else None,
    }

    if item.href is None:
        return SectionEntry(id=f"section-{item.line}", **common)

    external = is_external_href(item.href)
    if external or not is_markdown_path(item.href):
        return LinkEntry(
            id=f"link-{item.line}", href=item.href, external=external, **common
        )

    source_path = normalize_source_path(item.href, item.line)
    return ChapterEntry(
        id=f"chapter-{item.line}",
        href=item.href,
        source_path=source_path,
        source_absolute_path=source_root / source_path,
        route_path=to_route_path(source_path, pretty_urls),
        output_path=to_output_path(source_path, pretty_urls),
        **common,
    )


# ---------------------------------------------------------------------------
# Core: outline → graph
# ---------------------------------------------------------------------------

def build_summary_graph(
    outline_text: str,
    source_root: Path,
    pretty_urls: bool,
    summary_path: Path | None = None,
) -> SummaryGraph:
    """Parse outline text into a ``SummaryGraph``.

    Args:
        outline_text: Contents of SUMMARY.md.
        source_root:  Absolute source directory chapters are resolved in.
        pretty_urls:  Directory-style routes (``/guide/``) vs ``/guide.html``.
        summary_path: Where the outline was read from (informational).

    Raises:
        GraphParseError: empty outline, malformed item, bad nesting,
            unsafe chapter path, duplicate chapter path or no chapters.
    """
    where = summary_path or SUMMARY_FILE_NAME
    items = parse_outline_items(outline_text)
    if not items:
        raise GraphParseError(f"SUMMARY.md does not include any chapter entries: {where}")

    root_entries: list[SummaryEntry] = []
    entry_by_id: dict[str, SummaryEntry] = {}
    chapter_by_source_path: dict[str, ChapterEntry] = {}
    # (indent_width, entry) pairs for the currently open ancestors
    stack: list[tuple[int, SummaryEntry]] = []

    for item in items:
        while stack and stack[-1][0] >= item.indent_width:
            stack.pop()

        parent = stack[-1][1] if stack else None
        if parent is None and item.indent_width > 0:
            raise GraphParseError(
                f"Invalid SUMMARY nesting at line {item.line}: "
                "indentation starts before a parent entry.",
                line=item.line,
            )

        entry = _make_entry(item, parent, source_root, pretty_urls)

        if isinstance(entry, ChapterEntry):
            existing = chapter_by_source_path.get(entry.source_path)
            if existing is not None:
                raise GraphParseError(
                    f"Duplicate SUMMARY chapter path `{entry.source_path}` at line "
                    f"{item.line}. First defined at line {existing.line}.",
                    line=item.line,
                )
            chapter_by_source_path[entry.source_path] = entry

        if parent is None:
            root_entries.append(entry)
        else:
            parent.children.append(entry)

        entry_by_id[entry.id] = entry
        stack.append((item.indent_width, entry))

    chapters = flatten_chapters(root_entries)
    if not chapters:
        raise GraphParseError(f"SUMMARY.md does not declare any chapters: {where}")

    for index, chapter in enumerate(chapters):
        chapter.order = index
        chapter.previous_chapter_id = chapters[index - 1].id if index > 0 else None
        chapter.next_chapter_id = chapters[index + 1].id if index + 1 < len(chapters) else None

    return SummaryGraph(
        summary_path=summary_path,
        entries=root_entries,
        chapters=chapters,
        chapter_by_source_path=chapter_by_source_path,
        entry_by_id=entry_by_id,
        first_chapter_id=chapters[0].id,
        last_chapter_id=chapters[-1].id,
    )


def load_summary_graph(config) -> SummaryGraph:
    """Read ``SUMMARY.md`` from the configured source dir and parse it."""
    summary_path = config.src_dir / SUMMARY_FILE_NAME
    if not summary_path.is_file():
        raise GraphParseError(
            f"Could not find SUMMARY.md in source directory: {config.src_dir}"
        )
    text = summary_path.read_text(encoding="utf-8")
    return build_summary_graph(text, config.src_dir, config.pretty_urls, summary_path)
