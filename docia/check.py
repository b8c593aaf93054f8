"""
Structural checks for a docia book, without building it.

Reports:
  - chapters listed in SUMMARY.md whose file is missing
  - chapters that collide on route path or output path
  - relative markdown links inside chapters that do not point at a chapter
  - markdown files in the source dir that SUMMARY.md never mentions

Links inside fenced code blocks and inline code spans are ignored.
"""

import re

from docia.paths import MARKDOWN_PATH_RE, is_external_href, join_relative, split_href
from docia.summary import SUMMARY_FILE_NAME, load_summary_graph

_MARKDOWN_LINK_RE = re.compile(r"!?\[[^\]]*\]\(([^)]+)\)")
_FENCE_RE = re.compile(r"(```|~~~).*?\1", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`[^`\n]*`")


def strip_code(markdown: str) -> str:
    return _INLINE_CODE_RE.sub("", _FENCE_RE.sub("\n", markdown))


def link_targets(markdown: str, source_path: str) -> list[tuple[str, str | None]]:
    """Return ``(href, resolved_source_path)`` for each markdown-file link."""
    targets = []
    for m in _MARKDOWN_LINK_RE.finditer(strip_code(markdown)):
        href = m.group(1).strip().split(" ", 1)[0].strip("<>")
        if not href or is_external_href(href):
            continue
        path, _, _ = split_href(href)
        if MARKDOWN_PATH_RE.search(path) is None:
            continue
        targets.append((href, join_relative(source_path, path)))
    return targets


def check_project(config) -> list[str]:
    """Return a list of human-readable issues (empty when the book is clean)."""
    graph = load_summary_graph(config)
    issues: list[str] = []

    missing = [c.source_path for c in graph.chapters if not c.source_absolute_path.is_file()]
    if missing:
        issues.append(f"Missing chapter files referenced by {SUMMARY_FILE_NAME}:")
        issues.extend(f"- {path}" for path in missing)

    for attr, label in (("route_path", "route path"), ("output_path", "output path")):
        seen: dict[str, str] = {}
        for chapter in graph.chapters:
            key = getattr(chapter, attr)
            if key in seen:
                issues.append(
                    f"Duplicate {label} `{key}` for chapters `{seen[key]}` and `{chapter.source_path}`."
                )
                continue
            seen[key] = chapter.source_path

    for chapter in graph.chapters:
        if not chapter.source_absolute_path.is_file():
            continue
        text = chapter.source_absolute_path.read_text(encoding="utf-8")
        for href, target in link_targets(text, chapter.source_path):
            if target is None or target not in graph.chapter_by_source_path:
                issues.append(f"- {chapter.source_path}: broken link `{href}`")

    referenced = set(graph.chapter_by_source_path) | {SUMMARY_FILE_NAME}
    if config.src_dir.is_dir():
        for path in sorted(config.src_dir.rglob("*")):
            if not path.is_file() or MARKDOWN_PATH_RE.search(path.name) is None:
                continue
            relative = path.relative_to(config.src_dir).as_posix()
            if config.out_dir.is_relative_to(config.src_dir) and path.is_relative_to(config.out_dir):
                continue
            if relative not in referenced:
                issues.append(f"- {relative}: orphan markdown file not listed in {SUMMARY_FILE_NAME}")

    return issues
