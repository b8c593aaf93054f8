"""
Markdown renderer for docia chapters.

Configures Mistune with the plugins enabled in the ``markdown`` config
section and produces, for each chapter:
- the HTML fragment for the page body
- plain text (used for the meta description)
- search text (used for the client-side search index)
- the list of headings (used for the on-page table of contents)

Raw HTML is allowed in chapters, but <script>, <style>, <iframe> and
inline ``on*=`` handlers are stripped from the output.
"""

import html as html_lib
import re
from dataclasses import dataclass, field

import mistune
from mistune import escape as escape_text

from docia.frontmatter import extract_frontmatter

_HEADING_RE = re.compile(r"<h([1-6])([^>]*)>(.*?)</h\1>", re.IGNORECASE | re.DOTALL)
_ID_ATTR_RE = re.compile(r"""\sid=(?:"([^"]+)"|'([^']+)')""")
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_CODE_BLOCK_RE = re.compile(r"<pre[^>]*>.*?</pre>", re.IGNORECASE | re.DOTALL)

_DANGEROUS_PATTERNS = (
    re.compile(r"<style[^>]*>.*?</style>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<script[^>]*>.*?</script>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.DOTALL | re.IGNORECASE),
    re.compile(r'\s+on\w+\s*=\s*"[^"]*"', re.IGNORECASE),
    re.compile(r"\s+on\w+\s*=\s*'[^']*'", re.IGNORECASE),
)


@dataclass
class Heading:
    level: int
    id: str | None
    text: str


@dataclass
class RenderedPage:
    html: str
    plain_text: str
    search_text: str
    headings: list[Heading] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def strip_html(fragment: str) -> str:
    """Reduce an HTML fragment to whitespace-normalised plain text."""
    text = _TAG_RE.sub(" ", fragment)
    return normalize_whitespace(html_lib.unescape(text))


def sanitize_html(fragment: str) -> str:
    for pattern in _DANGEROUS_PATTERNS:
        fragment = pattern.sub("", fragment)
    return fragment


def slugify_heading(text: str) -> str:
    """Convert heading text to a URL-friendly slug for anchor IDs.

    e.g. "Practice Problem" → "practice-problem"
         "What is O(n log n)?" → "what-is-on-log-n"
    """
    slug = re.sub(r"<[^>]+>", "", text)
    slug = html_lib.unescape(slug).lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[\s-]+", "-", slug)
    return slug.strip("-") or "section"


def extract_headings(fragment: str) -> list[Heading]:
    headings = []
    for m in _HEADING_RE.finditer(fragment):
        id_match = _ID_ATTR_RE.search(m.group(2))
        heading_id = (id_match.group(1) or id_match.group(2)) if id_match else None
        headings.append(Heading(int(m.group(1)), heading_id, strip_html(m.group(3))))
    return headings


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class Renderer:
    """Callable markdown → ``RenderedPage`` collaborator used by the pipeline."""

    def __init__(self, options=None) -> None:
        plugins = []
        if options is None or options.tables:
            plugins.append("table")
        if options is None or options.strikethrough:
            plugins.append("strikethrough")
        if options is None or options.tasklists:
            plugins.append("task_lists")
        if options is not None and options.math:
            plugins.append("math")

        self._md = mistune.create_markdown(
            escape=False,
            hard_wrap=bool(options and options.hard_wraps),
            plugins=plugins,
        )
        self._slug_counts: dict[str, int] = {}
        self._md.renderer.heading = self._heading
        self._md.renderer.block_code = self._block_code
        if options is not None and options.math:
            self._md.renderer.register("inline_math", _render_inline_math)
            self._md.renderer.register("block_math", _render_block_math)

    def _heading(self, text, level, **attrs):
        slug = slugify_heading(text)
        if slug in self._slug_counts:
            self._slug_counts[slug] += 1
            slug = f"{slug}-{self._slug_counts[slug]}"
        else:
            self._slug_counts[slug] = 0
        return (
            f'<h{level} id="{slug}">'
            f'<a class="heading-anchor" href="#{slug}">{text}</a></h{level}>\n'
        )

    def _block_code(self, code, info=None):
        escaped = escape_text(code)
        if info:
            lang = info.split()[0]
            lang_attr = f' class="language-{escape_text(lang)}"'
            lang_label = f'<span class="code-lang">{escape_text(lang)}</span>'
        else:
            lang_attr = ""
            lang_label = ""
        return (
            f'<div class="code-block">'
            f"{lang_label}"
            f'<button class="copy-btn" type="button" aria-label="Copy code">Copy</button>'
            f"<pre><code{lang_attr}>{escaped}</code></pre>"
            f"</div>\n"
        )

    def render(self, markdown: str) -> RenderedPage:
        metadata, body = extract_frontmatter(markdown)
        # heading ids are unique per page, not per build
        self._slug_counts.clear()
        fragment = sanitize_html(self._md(body))
        return RenderedPage(
            html=fragment,
            plain_text=strip_html(_CODE_BLOCK_RE.sub(" ", fragment)),
            search_text=strip_html(fragment),
            headings=extract_headings(fragment),
            metadata=metadata,
        )

    __call__ = render


def _render_inline_math(renderer, text):
    return f'<span class="math">\\({text}\\)</span>'


def _render_block_math(renderer, text):
    return f'<div class="math">\\[{text}\\]</div>\n'


def create_renderer(config=None) -> Renderer:
    """Create a renderer from a ``ResolvedConfig`` (or defaults when ``None``)."""
    return Renderer(config.markdown if config is not None else None)
