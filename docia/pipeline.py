"""
Build pipeline for docia sites.

Orchestrates, strictly in this order:
  1. clean      : delete and recreate the output dir
  2. assets     : copy the public dir, bundle the client script/styles
  3. pages      : render every chapter, write its page and markdown mirror
  4. search-seo : write search-index.json, sitemap.xml, robots.txt, llms.txt

Each phase relies on the side effects of the previous one, so phases never
overlap.  The outline is parsed before anything is deleted: a broken
SUMMARY.md leaves the previous output untouched.

Progress is pushed to an optional ``on_progress`` callback as
``ProgressEvent`` objects; nothing is buffered.
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from docia.bundle import ClientBundle, bundle_client_assets
from docia.errors import BundleFailure, ChapterMissingError
from docia.frontmatter import metadata_string
from docia.layout import build_page_description, render_page
from docia.renderer import create_renderer
from docia.resolver import rewrite_chapter_links
from docia.search import create_search_entry, write_search_index
from docia.seo import write_seo_artifacts
from docia.summary import SummaryGraph, load_summary_graph

logger = logging.getLogger(__name__)

PHASES = ("clean", "assets", "pages", "search-seo")


@dataclass(frozen=True)
class ProgressEvent:
    phase: str
    status: str
    current: int | None = None
    total: int | None = None


@dataclass
class BuildResult:
    """What one build wrote.  Created fresh per build."""

    out_dir: Path
    page_count: int = 0
    copied_public_dir: bool = False
    public_file_count: int = 0
    client_asset_count: int = 0
    search_document_count: int = 0
    markdown_mirror_count: int = 0
    seo_files: list[str] = field(default_factory=list)
    timings_ms: dict[str, float] = field(default_factory=dict)
    output_files: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------

def _reset_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _copy_public_dir(public_dir: Path, out_dir: Path) -> list[str]:
    """Copy the public dir verbatim; return the relative paths copied."""
    shutil.copytree(public_dir, out_dir, dirs_exist_ok=True)
    return [
        p.relative_to(public_dir).as_posix()
        for p in sorted(public_dir.rglob("*"))
        if p.is_file()
    ]


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _relative_output(out_dir: Path, path: Path) -> str:
    return Path(path).resolve().relative_to(out_dir.resolve()).as_posix()


class _PhaseClock:
    """Records per-phase wall time and emits start/end events."""

    def __init__(self, emit: Callable[[ProgressEvent], None], timings: dict[str, float]) -> None:
        self._emit = emit
        self._timings = timings
        self._started: dict[str, float] = {}

    def start(self, phase: str, total: int | None = None) -> None:
        self._started[phase] = time.perf_counter()
        self._emit(ProgressEvent(phase, "start", total=total))

    def end(self, phase: str, current: int | None = None, total: int | None = None) -> None:
        self._emit(ProgressEvent(phase, "end", current=current, total=total))
        self._timings[phase] = (time.perf_counter() - self._started[phase]) * 1000


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

async def run_pipeline(
    config,
    graph: SummaryGraph,
    renderer=None,
    bundler: Callable[..., ClientBundle] | None = None,
    on_progress: Callable[[ProgressEvent], None] | None = None,
) -> BuildResult:
    """Run every build phase against an already-parsed outline.

    Args:
        config:      ``ResolvedConfig`` of the project.
        graph:       The outline parsed for this build.
        renderer:    Callable markdown → ``RenderedPage`` (mistune by default).
        bundler:     Callable ``(out_dir, base_path) → ClientBundle``.
        on_progress: Optional sink for ``ProgressEvent`` objects.

    Raises:
        ChapterMissingError: a chapter file does not exist.  Pages written
            earlier in the same run stay on disk.
        BundleFailure: the bundler failed; no pages are written.
    """
    renderer = renderer or create_renderer(config)
    bundler = bundler or bundle_client_assets

    def emit(event: ProgressEvent) -> None:
        if on_progress is not None:
            on_progress(event)

    out_dir = config.out_dir
    result = BuildResult(out_dir=out_dir)
    clock = _PhaseClock(emit, result.timings_ms)
    output_files: list[str] = []
    started = time.perf_counter()

    # --- Phase 1: clean ---
    clock.start("clean")
    await asyncio.to_thread(_reset_dir, out_dir)
    clock.end("clean")

    # --- Phase 2: public dir + client bundle ---
    clock.start("assets")
    if config.public_dir.is_dir():
        copied = await asyncio.to_thread(_copy_public_dir, config.public_dir, out_dir)
        result.copied_public_dir = True
        result.public_file_count = len(copied)
        output_files.extend(copied)

    try:
        bundle = await asyncio.to_thread(bundler, out_dir, config.base_path)
    except BundleFailure:
        raise
    except Exception as exc:
        raise BundleFailure(f"Failed to bundle client assets: {exc}") from exc
    result.client_asset_count = len(bundle.outputs)
    output_files.extend(_relative_output(out_dir, p) for p in bundle.outputs)
    clock.end("assets")

    # --- Phase 3: pages ---
    total = len(graph.chapters)
    search_entries = []
    clock.start("pages", total=total)
    for index, chapter in enumerate(graph.chapters):
        if not chapter.source_absolute_path.is_file():
            raise ChapterMissingError(chapter.source_path)

        source = await asyncio.to_thread(chapter.source_absolute_path.read_text, encoding="utf-8")
        rendered = renderer(source)
        content_html = rewrite_chapter_links(
            rendered.html, chapter.source_path, graph, config.base_path
        )

        search_entries.append(
            create_search_entry(
                id=chapter.id,
                title=chapter.title,
                route_path=chapter.route_path,
                source_path=chapter.source_path,
                text=rendered.search_text,
            )
        )

        description = metadata_string(rendered.metadata, "description") or build_page_description(
            rendered.plain_text
        )
        page = render_page(
            config,
            graph,
            chapter,
            content_html,
            rendered.headings,
            description,
            bundle,
            page_title=metadata_string(rendered.metadata, "title"),
        )

        await asyncio.to_thread(_write_text, out_dir / chapter.output_path, page)
        output_files.append(chapter.output_path)

        mirror_path = chapter.output_path + ".md"
        await asyncio.to_thread(_write_text, out_dir / mirror_path, source)
        output_files.append(mirror_path)
        result.markdown_mirror_count += 1

        emit(ProgressEvent("pages", "progress", current=index + 1, total=total))
    clock.end("pages", current=total, total=total)
    result.page_count = total

    # --- Phase 4: search index + SEO ---
    clock.start("search-seo")
    output_files.append(await asyncio.to_thread(write_search_index, out_dir, search_entries))
    result.search_document_count = len(search_entries)
    result.seo_files = await asyncio.to_thread(write_seo_artifacts, config, graph, out_dir)
    output_files.extend(result.seo_files)
    clock.end("search-seo")

    result.timings_ms["total"] = (time.perf_counter() - started) * 1000
    result.output_files = sorted(set(output_files))
    logger.debug("Wrote %d files to %s", len(result.output_files), out_dir)
    return result


async def build_site(config, renderer=None, bundler=None, on_progress=None) -> tuple[SummaryGraph, BuildResult]:
    """Parse the outline, then run the pipeline.

    The outline is parsed first so a ``GraphParseError`` aborts the build
    before the output dir is touched.
    """
    graph = await asyncio.to_thread(load_summary_graph, config)
    result = await run_pipeline(config, graph, renderer, bundler, on_progress)
    return graph, result
