"""
Link resolution for rendered chapters.

Chapters link to each other the way they would on GitHub:
``[Setup](../guides/setup.md#install)``.  After rendering, every such
anchor is rewritten to the target chapter's route so the link works on
the built site.

Rules:
  - only same-origin relative hrefs ending in a markdown extension are
    candidates; external, fragment-only and non-markdown hrefs are kept
  - the href is resolved against the current chapter's directory
  - hrefs climbing out of the source dir, or naming a file that is not a
    chapter in the outline, are left byte-for-byte unchanged
  - query string and fragment are preserved
"""

import re

from docia.paths import (
    is_external_href,
    is_markdown_path,
    join_relative,
    split_href,
)

_ANCHOR_HREF_RE = re.compile(
    r"""<a\b([^>]*?)\bhref=("([^"]*)"|'([^']*)')([^>]*)>""", re.IGNORECASE
)


def to_base_path_href(base_path: str, href: str) -> str:
    """Prefix a root-relative href with the site's base path.

    e.g. ("/docs", "/guide/") → "/docs/guide/"
         ("/", "/guide/")     → "/guide/"
    """
    if is_external_href(href):
        return href
    prefix = "" if base_path == "/" else base_path
    if not href.startswith("/"):
        href = "/" + href
    return prefix + href


def resolve_chapter_href(href: str, current_source_path: str, graph):
    """Return the chapter an href points at, or ``None``."""
    href = href.strip()
    if not href or is_external_href(href):
        return None

    path, _, _ = split_href(href)
    if not is_markdown_path(path):
        return None

    source_path = join_relative(current_source_path, path)
    if source_path is None:
        return None
    return graph.chapter_by_source_path.get(source_path)


def rewrite_chapter_links(html: str, current_source_path: str, graph, base_path: str = "/") -> str:
    """Rewrite markdown-file anchors in *html* to chapter routes.

    Args:
        html:                Rendered HTML fragment of the current chapter.
        current_source_path: Source-relative path of the current chapter.
        graph:               The build's ``SummaryGraph``.
        base_path:           Site base path prepended to routes.
    """

    def replace(m: re.Match) -> str:
        href = m.group(3) if m.group(3) is not None else m.group(4)
        chapter = resolve_chapter_href(href, current_source_path, graph)
        if chapter is None:
            return m.group(0)

        _, query, fragment = split_href(href.strip())
        routed = to_base_path_href(base_path, chapter.route_path) + query + fragment
        return f'<a{m.group(1)}href="{routed}"{m.group(5)}>'

    return _ANCHOR_HREF_RE.sub(replace, html)
