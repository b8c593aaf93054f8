"""
Search index emission.

The index is a single JSON document the client fetches on first search:

    {"version": 1, "generatedAt": "...", "pages": [{"id", "title",
     "routePath", "sourcePath", "text"}, ...]}
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from docia.renderer import normalize_whitespace

SEARCH_INDEX_FILE = "search-index.json"
SEARCH_INDEX_VERSION = 1
MAX_TEXT_LENGTH = 4000


def compact_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    text = normalize_whitespace(text)
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def create_search_entry(id: str, title: str, route_path: str, source_path: str, text: str) -> dict:
    return {
        "id": id,
        "title": title.strip(),
        "routePath": route_path.strip(),
        "sourcePath": source_path.strip(),
        "text": compact_text(text),
    }


def write_search_index(out_dir: Path, entries: list[dict]) -> str:
    """Write the index into *out_dir* and return its relative path."""
    payload = {
        "version": SEARCH_INDEX_VERSION,
        "generatedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "pages": entries,
    }
    (out_dir / SEARCH_INDEX_FILE).write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return SEARCH_INDEX_FILE
