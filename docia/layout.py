"""
HTML page layout for docia chapters.

Wraps a rendered chapter fragment in a full document: sidebar built from
the outline tree, on-page table of contents, previous/next pager and the
bundled client assets.
"""

import html
from urllib.parse import quote

from docia.summary import ChapterEntry, LinkEntry, SummaryEntry
from docia.resolver import to_base_path_href

DESCRIPTION_LIMIT = 220


def encode_path_for_href(path: str) -> str:
    """Percent-encode each segment of a relative path."""
    return "/".join(quote(segment, safe="") for segment in path.split("/"))


def build_page_description(plain_text: str) -> str:
    text = plain_text.strip()
    if len(text) <= DESCRIPTION_LIMIT:
        return text
    return text[: DESCRIPTION_LIMIT - 3] + "..."


def _render_nav_entries(entries: list[SummaryEntry], current: ChapterEntry, base_path: str) -> str:
    items = []
    for entry in entries:
        title = html.escape(entry.title)
        if isinstance(entry, ChapterEntry):
            href = html.escape(to_base_path_href(base_path, entry.route_path))
            current_attr = ' aria-current="page"' if entry.id == current.id else ""
            label = f'<a href="{href}"{current_attr}>{title}</a>'
        elif isinstance(entry, LinkEntry):
            href = html.escape(entry.href)
            rel = ' rel="noopener" target="_blank"' if entry.external else ""
            label = f'<a href="{href}"{rel}>{title}</a>'
        else:
            label = f'<span class="docia-section-label">{title}</span>'

        children = ""
        if entry.children:
            children = _render_nav_entries(entry.children, current, base_path)
        items.append(f"<li>{label}{children}</li>")
    return f"<ul>{''.join(items)}</ul>"


def _render_toc(headings) -> str:
    items = [
        f'<li class="toc-h{h.level}"><a href="#{html.escape(h.id)}">{html.escape(h.text)}</a></li>'
        for h in headings
        if h.id and h.level in (2, 3)
    ]
    if not items:
        return ""
    return f'<nav class="docia-toc" aria-label="On this page"><ul>{"".join(items)}</ul></nav>'


def _render_pager(graph, chapter: ChapterEntry, base_path: str) -> str:
    parts = []
    previous = graph.chapter(chapter.previous_chapter_id)
    following = graph.chapter(chapter.next_chapter_id)
    if previous is not None:
        href = html.escape(to_base_path_href(base_path, previous.route_path))
        parts.append(f'<a class="prev" rel="prev" href="{href}">← {html.escape(previous.title)}</a>')
    else:
        parts.append("<span></span>")
    if following is not None:
        href = html.escape(to_base_path_href(base_path, following.route_path))
        parts.append(f'<a class="next" rel="next" href="{href}">{html.escape(following.title)} →</a>')
    return f'<nav class="docia-pager">{"".join(parts)}</nav>'


def render_page(config, graph, chapter: ChapterEntry, content_html: str, headings,
                description: str, bundle, page_title: str | None = None) -> str:
    """Return the full HTML document for one chapter."""
    base_path = config.base_path
    site = config.site
    title = html.escape(f"{page_title or chapter.title} | {site.title}")
    markdown_href = to_base_path_href(base_path, "/" + encode_path_for_href(chapter.output_path + ".md"))
    search_href = to_base_path_href(base_path, "/search-index.json")
    home_href = to_base_path_href(base_path, "/")
    data_base = "" if base_path == "/" else base_path

    stylesheet = ""
    if bundle.stylesheet_href:
        stylesheet = f'<link rel="stylesheet" href="{html.escape(bundle.stylesheet_href)}">'

    canonical = ""
    if site.url:
        canonical = f'<link rel="canonical" href="{html.escape(site.url + to_base_path_href(base_path, chapter.route_path))}">'

    return f"""<!doctype html>
<html lang="{html.escape(site.language)}">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<meta name="description" content="{html.escape(description)}">
{canonical}
<link rel="alternate" type="text/markdown" href="{html.escape(markdown_href)}">
{stylesheet}
<script type="module" src="{html.escape(bundle.script_href)}"></script>
</head>
<body>
<div class="docia-layout">
<aside class="docia-sidebar">
<a class="docia-home" href="{html.escape(home_href)}">{html.escape(site.title)}</a>
<input id="docia-search" type="search" placeholder="Search" data-index="{html.escape(search_href)}" data-base="{html.escape(data_base)}">
<ul id="docia-search-results"></ul>
<nav aria-label="Book">{_render_nav_entries(graph.entries, chapter, base_path)}</nav>
</aside>
<main class="docia-content">
<article>
{content_html}
</article>
{_render_pager(graph, chapter, base_path)}
</main>
{_render_toc(headings)}
</div>
</body>
</html>
"""
