"""
Exception hierarchy for docia.

Every error a user can cause (bad outline, missing chapter, bad config)
derives from ``DociaError`` so the CLI can report it without a traceback.
"""


class DociaError(Exception):
    """Base exception for docia operations."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(DociaError):
    """Invalid or unreadable configuration file."""


class GraphParseError(DociaError):
    """Malformed or unsafe SUMMARY.md outline."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


class ChapterMissingError(DociaError):
    """A chapter declared in the outline has no file on disk."""

    def __init__(self, source_path: str) -> None:
        super().__init__(f"Chapter file does not exist for SUMMARY entry: {source_path}")
        self.source_path = source_path


class BundleFailure(DociaError):
    """The client asset bundler did not produce usable output."""


class WatchError(DociaError):
    """A filesystem watcher failed after being armed."""


class RebuildFailure(DociaError):
    """A dev-loop rebuild failed; the previous output stays in place."""
