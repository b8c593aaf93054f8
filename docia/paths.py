"""
Relative path helpers shared by the outline parser, the link rewriter
and the static file resolver.

All paths handled here are POSIX-style and relative to some root
(source dir or output dir).  Anything that would climb above that root
is rejected by returning ``None``.
"""

import posixpath
import re

MARKDOWN_PATH_RE = re.compile(r"\.(md|markdown|mdown)$", re.IGNORECASE)
EXTERNAL_LINK_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|#|//)")


def is_external_href(href: str) -> bool:
    """True for ``scheme:``, ``#fragment`` and ``//host`` hrefs."""
    return EXTERNAL_LINK_RE.match(href.strip()) is not None


def split_href(href: str) -> tuple[str, str, str]:
    """Split an href into ``(path, query, fragment)``.

    The query and fragment keep their leading ``?`` / ``#`` so they can
    be re-appended verbatim.

    e.g. "guide.md?x=1#top" → ("guide.md", "?x=1", "#top")
    """
    hash_index = href.find("#")
    fragment = href[hash_index:] if hash_index >= 0 else ""
    rest = href[:hash_index] if hash_index >= 0 else href

    query_index = rest.find("?")
    query = rest[query_index:] if query_index >= 0 else ""
    path = rest[:query_index] if query_index >= 0 else rest
    return path, query, fragment


def is_markdown_path(path: str) -> bool:
    path, _, _ = split_href(path)
    return MARKDOWN_PATH_RE.search(path) is not None


def strip_markdown_extension(path: str) -> str:
    return MARKDOWN_PATH_RE.sub("", path)


def escapes_root(normalized: str) -> bool:
    """True if a normalized relative path climbs above its root."""
    return normalized == ".." or normalized.startswith("../")


def normalize_relative(path: str) -> str | None:
    """Collapse ``.`` / ``..`` segments of a relative path.

    Backslashes are treated as separators and a leading ``/`` is dropped,
    so the result is always relative.  Returns ``None`` when the path
    escapes its root.  An empty path normalizes to ``""``.
    """
    path = path.replace("\\", "/").lstrip("/")
    if not path:
        return ""
    normalized = posixpath.normpath(path)
    if escapes_root(normalized):
        return None
    return "" if normalized == "." else normalized


def join_relative(current_file: str, href_path: str) -> str | None:
    """Resolve *href_path* as written inside *current_file*.

    Root-relative hrefs (``/x.md``) are taken from the root; everything
    else is joined onto the current file's directory.

    e.g. ("guides/a.md", "../README.md") → "README.md"
         ("a.md", "../../x.md")          → None
    """
    href_path = href_path.replace("\\", "/")
    if href_path.startswith("/"):
        return normalize_relative(href_path)
    directory = posixpath.dirname(current_file.replace("\\", "/"))
    return normalize_relative(posixpath.join(directory, href_path))
