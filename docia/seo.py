"""
SEO artifacts: sitemap.xml, robots.txt and llms.txt.

All three are derived from the outline and the ``site`` config alone.
Absolute URLs are only possible when ``site.url`` is configured, so the
sitemap is skipped without it and llms.txt falls back to root-relative
links.
"""

from pathlib import Path
from urllib.parse import urljoin
from xml.sax.saxutils import escape as xml_escape

from docia.layout import encode_path_for_href
from docia.resolver import to_base_path_href

SITEMAP_FILE = "sitemap.xml"
ROBOTS_FILE = "robots.txt"
LLMS_FILE = "llms.txt"


def absolute_url(config, href: str) -> str | None:
    """Join a root-relative href onto ``site.url`` (``None`` if unset)."""
    site_url = config.site.url.strip()
    if not site_url:
        return None
    return urljoin(site_url + "/", href.lstrip("/"))


def build_sitemap_xml(urls: list[str]) -> str:
    entries = "".join(f"<url><loc>{xml_escape(url)}</loc></url>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>\n'
    )


def build_robots_txt(sitemap_url: str | None) -> str:
    lines = ["User-agent: *", "Allow: /"]
    if sitemap_url:
        lines.append(f"Sitemap: {sitemap_url}")
    return "\n".join(lines) + "\n"


def build_llms_txt(config, graph) -> str:
    base_path = config.base_path

    def href_for(path: str) -> str:
        relative = to_base_path_href(base_path, path)
        return absolute_url(config, relative) or relative

    lines = [f"# {config.site.title}", ""]
    if config.site.description.strip():
        lines += [f"> {config.site.description.strip()}", ""]

    lines += [
        "This file follows the llms.txt standard and links to markdown versions "
        "of key documentation pages.",
        "",
        "## Docs",
        "",
    ]
    for chapter in graph.chapters:
        href = href_for("/" + encode_path_for_href(chapter.output_path + ".md"))
        lines.append(f"- [{chapter.title}]({href}): Markdown source for {chapter.route_path}")

    lines += [
        "",
        "## Optional",
        "",
        f"- [llms.txt]({href_for('/' + LLMS_FILE)}): Index of LLM-facing docs links",
        f"- [Sitemap]({href_for('/' + SITEMAP_FILE)}): XML sitemap for the documentation site",
        f"- [Search Index]({href_for('/search-index.json')}): Client-side search data",
    ]
    return "\n".join(lines) + "\n"


def write_seo_artifacts(config, graph, out_dir: Path | None = None) -> list[str]:
    """Write the SEO files and return the relative paths emitted."""
    out_dir = out_dir or config.out_dir
    emitted = []

    urls = [
        url
        for url in (absolute_url(config, to_base_path_href(config.base_path, c.route_path)) for c in graph.chapters)
        if url is not None
    ]
    if urls:
        (out_dir / SITEMAP_FILE).write_text(build_sitemap_xml(urls), encoding="utf-8")
        emitted.append(SITEMAP_FILE)

    sitemap_url = absolute_url(config, to_base_path_href(config.base_path, "/" + SITEMAP_FILE))
    (out_dir / ROBOTS_FILE).write_text(build_robots_txt(sitemap_url), encoding="utf-8")
    emitted.append(ROBOTS_FILE)

    (out_dir / LLMS_FILE).write_text(build_llms_txt(config, graph), encoding="utf-8")
    emitted.append(LLMS_FILE)

    return emitted
