"""
Front matter handling for chapter sources.

Chapters may start with a YAML block between ``---`` delimiters.  It is
removed before rendering so it never shows up in the page, and two keys
are honoured by the page layout:

  - ``title``        overrides the outline title in ``<title>``
  - ``description``  overrides the auto-generated meta description

Dates and datetimes are converted to ISO strings so the metadata stays
JSON-serialisable.  Malformed YAML is treated as "no front matter".
"""

import re
from datetime import date, datetime

import yaml

_FRONTMATTER_RE = re.compile(r"\A---\s*\n(.*?\n)---\s*\n?", re.DOTALL)


def extract_frontmatter(text: str) -> tuple[dict, str]:
    """Split leading YAML front matter from markdown body.

    Returns:
        (metadata_dict, body_without_frontmatter)
        If no front matter is found, returns ({}, original_text).
    """
    m = _FRONTMATTER_RE.match(text)
    if m is None:
        return {}, text

    try:
        parsed = yaml.safe_load(m.group(1))
    except yaml.YAMLError:
        return {}, text

    if not isinstance(parsed, dict):
        return {}, text

    return {str(k): _normalise(v) for k, v in parsed.items()}, text[m.end():]


def _normalise(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_normalise(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _normalise(v) for k, v in value.items()}
    return value


def metadata_string(metadata: dict, key: str) -> str | None:
    """Return a non-empty string value from front matter, else ``None``."""
    value = metadata.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None
