"""
Project and chapter scaffolding for ``docia init`` and ``docia new``.

``init`` writes a starter book:

    docia.yaml
    book/SUMMARY.md
    book/README.md
    book/getting-started.md
    public/.gitkeep

``new`` adds one chapter file under the configured source dir, optionally
appending a ``- [Title](path.md)`` line to SUMMARY.md.  Chapter names are
slugged per path segment ("Advanced Topics/Caching" →
"advanced-topics/caching.md"); names already ending in ``.md`` are used
as given but must still stay inside the source dir.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from docia.errors import DociaError
from docia.paths import normalize_relative
from docia.summary import SUMMARY_FILE_NAME

CONFIG_FILE_NAME = "docia.yaml"


@dataclass
class TemplateFile:
    path: str
    contents: str


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------

def slugify(name: str) -> str:
    """'Getting Started!' → 'getting-started' (falls back to 'chapter')."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "chapter"


def title_from_name(name: str) -> str:
    """'getting-started.md' → 'Getting Started'"""
    text = re.sub(r"\.md$", "", name.strip(), flags=re.IGNORECASE)
    text = re.sub(r"[/_-]+", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    if not text:
        return "Documentation"
    return " ".join(part[:1].upper() + part[1:] for part in text.split(" "))


def chapter_path_for(name: str) -> str:
    """Turn a user-supplied chapter name into a source-relative ``.md`` path.

    Raises:
        DociaError: empty name, or a path that leaves the source dir.
    """
    name = name.strip()
    if not name:
        raise DociaError("Please provide a chapter name.")

    if name.lower().endswith(".md"):
        path = name
    else:
        segments = [slugify(s) for s in name.split("/") if s.strip()]
        if not segments:
            raise DociaError("Chapter name resolves to an empty path.")
        path = "/".join(segments) + ".md"

    normalized = normalize_relative(path)
    if not normalized:
        raise DociaError("Chapter path must stay inside the configured source directory.")
    return normalized


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

def init_template(title: str, description: str, language: str = "en") -> list[TemplateFile]:
    config = {
        "srcDir": "book",
        "outDir": "dist",
        "site": {"title": title, "description": description, "language": language},
    }
    return [
        TemplateFile(
            CONFIG_FILE_NAME,
            yaml.safe_dump(config, sort_keys=False, allow_unicode=True),
        ),
        TemplateFile(
            f"book/{SUMMARY_FILE_NAME}",
            "# Summary\n\n- [Introduction](README.md)\n- [Getting Started](getting-started.md)\n",
        ),
        TemplateFile(
            "book/README.md",
            f"# {title}\n\nWelcome to your documentation site.\n\n"
            "Use `docia build` to generate static HTML output.\n",
        ),
        TemplateFile(
            "book/getting-started.md",
            "# Getting Started\n\n"
            "This chapter is a starting point for your docs.\n\n"
            "1. Edit this file.\n"
            "2. Update `book/SUMMARY.md`.\n"
            "3. Run `docia dev` while writing.\n",
        ),
        TemplateFile("public/.gitkeep", ""),
    ]


def init_project(target: Path, title: str | None = None, description: str | None = None,
                 language: str = "en", force: bool = False) -> list[Path]:
    """Write the starter project into *target* and return the files written.

    Raises:
        DociaError: a template file already exists and *force* is off.
            Nothing is written in that case.
    """
    target = Path(target).resolve()
    title = title or title_from_name(target.name)
    description = description or f"{title} documentation built with docia."
    files = init_template(title, description, language)

    if not force:
        conflicts = [f.path for f in files if (target / f.path).exists()]
        if conflicts:
            listing = "\n".join(f"- {path}" for path in conflicts)
            raise DociaError(
                "Cannot initialize project because files already exist:\n"
                f"{listing}\nUse --force to overwrite these files."
            )

    written = []
    for f in files:
        path = target / f.path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f.contents, encoding="utf-8")
        written.append(path)
    return written


# ---------------------------------------------------------------------------
# new
# ---------------------------------------------------------------------------

def append_summary_entry(summary_path: Path, title: str, chapter_path: str) -> bool:
    """Append a chapter line to SUMMARY.md unless it is already there."""
    if not summary_path.is_file():
        return False
    current = summary_path.read_text(encoding="utf-8")
    entry = f"- [{title}]({chapter_path})"
    if entry in current:
        return False
    separator = "\n" if current and not current.endswith("\n") else ""
    summary_path.write_text(f"{current}{separator}{entry}\n", encoding="utf-8")
    return True


def create_chapter(src_dir: Path, name: str, title: str | None = None,
                   force: bool = False, add_to_summary: bool = False) -> tuple[Path, bool]:
    """Create a chapter file under *src_dir*.

    Returns:
        (absolute chapter path, whether SUMMARY.md was updated)

    Raises:
        DociaError: bad name, a path outside *src_dir*, or an existing
            file without *force*.
    """
    chapter_path = chapter_path_for(name)
    absolute = src_dir / chapter_path
    if absolute.exists() and not force:
        raise DociaError(
            f"Chapter already exists at `{chapter_path}`. Use --force to overwrite it."
        )

    title = title or title_from_name(Path(chapter_path).name)
    absolute.parent.mkdir(parents=True, exist_ok=True)
    absolute.write_text(f"# {title}\n\nWrite your chapter content here.\n", encoding="utf-8")

    added = False
    if add_to_summary:
        added = append_summary_entry(src_dir / SUMMARY_FILE_NAME, title, chapter_path)
    return absolute, added
