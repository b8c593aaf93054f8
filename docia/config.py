"""
Configuration loading for docia.

The config file is YAML (``docia.yaml`` / ``docia.yml`` in the working
directory, or an explicit ``--config`` path).  Every key is optional;
missing keys fall back to ``DEFAULT_CONFIG``.

    srcDir: book
    outDir: dist
    publicDir: public
    basePath: /
    prettyUrls: true
    site:
      title: My Docs
      url: https://docs.example.com
    markdown:
      math: true

The file is re-read and re-parsed on every ``load_config()`` call, so the
dev loop always sees the latest contents.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from docia.errors import ConfigError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILES = ("docia.yaml", "docia.yml")

DEFAULT_CONFIG = {
    "srcDir": "book",
    "outDir": "dist",
    "publicDir": "public",
    "basePath": "/",
    "prettyUrls": True,
    "site": {
        "title": "Documentation",
        "description": "",
        "language": "en",
        "url": "",
    },
    "markdown": {
        "hardWraps": False,
        "math": False,
        "tables": True,
        "strikethrough": True,
        "tasklists": True,
    },
}

_REQUIRED_STRINGS = ("srcDir", "outDir", "publicDir", "basePath")
_SITE_REQUIRED = ("title", "language")
_SITE_OPTIONAL = ("description", "url")


# ---------------------------------------------------------------------------
# Resolved config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SiteConfig:
    title: str = "Documentation"
    description: str = ""
    language: str = "en"
    url: str = ""


@dataclass(frozen=True)
class MarkdownOptions:
    hard_wraps: bool = False
    math: bool = False
    tables: bool = True
    strikethrough: bool = True
    tasklists: bool = True


@dataclass(frozen=True)
class ResolvedConfig:
    """Fully validated configuration with absolute directories."""

    cwd: Path
    config_file: Path | None
    src_dir: Path
    out_dir: Path
    public_dir: Path
    base_path: str = "/"
    pretty_urls: bool = True
    site: SiteConfig = field(default_factory=SiteConfig)
    markdown: MarkdownOptions = field(default_factory=MarkdownOptions)
    source: str = "defaults"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _expect_string(value, key_path: str, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Invalid config value at `{key_path}`: expected a string.")
    value = value.strip()
    if not value and not allow_empty:
        raise ConfigError(f"Invalid config value at `{key_path}`: string cannot be empty.")
    return value


def _expect_bool(value, key_path: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid config value at `{key_path}`: expected a boolean.")
    return value


def _expect_mapping(value, key_path: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid config value at `{key_path}`: expected a mapping.")
    return value


def normalize_base_path(base_path: str) -> str:
    """'/docs/' → '/docs', 'docs' → '/docs', '' → '/'"""
    value = base_path.strip()
    if not value:
        return "/"
    if not value.startswith("/"):
        value = "/" + value
    if value != "/" and value.endswith("/"):
        value = value.rstrip("/") or "/"
    return value


def normalize_site_url(url: str) -> str:
    return url.strip().rstrip("/")


def merge_user_config(user: dict) -> dict:
    """Validate a parsed YAML mapping and merge it over the defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG)

    for key in _REQUIRED_STRINGS:
        if user.get(key) is not None:
            merged[key] = _expect_string(user[key], key)

    if user.get("prettyUrls") is not None:
        merged["prettyUrls"] = _expect_bool(user["prettyUrls"], "prettyUrls")

    if user.get("site") is not None:
        site = _expect_mapping(user["site"], "site")
        for key in _SITE_REQUIRED:
            if site.get(key) is not None:
                merged["site"][key] = _expect_string(site[key], f"site.{key}")
        for key in _SITE_OPTIONAL:
            if site.get(key) is not None:
                merged["site"][key] = _expect_string(site[key], f"site.{key}", allow_empty=True)

    if user.get("markdown") is not None:
        markdown = _expect_mapping(user["markdown"], "markdown")
        for key in DEFAULT_CONFIG["markdown"]:
            if markdown.get(key) is not None:
                merged["markdown"][key] = _expect_bool(markdown[key], f"markdown.{key}")

    return merged


def resolve_config(merged: dict, cwd: Path, config_file: Path | None) -> ResolvedConfig:
    """Turn a merged mapping into a ``ResolvedConfig``.

    Relative directories are resolved against the config file's directory,
    or *cwd* when running on defaults.
    """
    root = config_file.parent if config_file else cwd
    site = merged["site"]
    markdown = merged["markdown"]
    return ResolvedConfig(
        cwd=cwd,
        config_file=config_file,
        src_dir=(root / merged["srcDir"]).resolve(),
        out_dir=(root / merged["outDir"]).resolve(),
        public_dir=(root / merged["publicDir"]).resolve(),
        base_path=normalize_base_path(merged["basePath"]),
        pretty_urls=merged["prettyUrls"],
        site=SiteConfig(
            title=site["title"],
            description=site["description"],
            language=site["language"],
            url=normalize_site_url(site["url"]),
        ),
        markdown=MarkdownOptions(
            hard_wraps=markdown["hardWraps"],
            math=markdown["math"],
            tables=markdown["tables"],
            strikethrough=markdown["strikethrough"],
            tasklists=markdown["tasklists"],
        ),
        source="file" if config_file else "defaults",
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def find_config_file(cwd: Path, config_file: str | Path | None = None) -> Path | None:
    """Locate the config file to use, or ``None`` for built-in defaults."""
    if config_file is not None:
        path = (cwd / config_file).resolve()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path

    for name in DEFAULT_CONFIG_FILES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate.resolve()
    return None


def load_config(cwd: str | Path | None = None, config_file: str | Path | None = None) -> ResolvedConfig:
    """Load, validate and resolve the project configuration.

    Args:
        cwd:         Project directory (defaults to the process cwd).
        config_file: Explicit config path, relative to *cwd*.

    Raises:
        ConfigError: unreadable YAML, wrong value types or a missing
            explicit config file.
    """
    cwd = Path(cwd or Path.cwd()).resolve()
    path = find_config_file(cwd, config_file)

    user: dict = {}
    if path is not None:
        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse config file {path}: {exc}") from exc
        if parsed is not None:
            user = _expect_mapping(parsed, "<root>")

    return resolve_config(merge_user_config(user), cwd, path)
