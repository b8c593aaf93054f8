"""
Live-editing loop for docia: watch → debounce → rebuild → serve.

``DevLoop`` owns all mutable dev-server state:
  - the current ``ResolvedConfig`` (reloaded from disk on every rebuild)
  - the active filesystem watchers (replaced after every good rebuild)
  - a single "build in progress" flag plus one pending-reason slot
  - the debounce timer

Raw filesystem events restart the debounce timer; only a quiet period of
``debounce`` seconds actually requests a rebuild.  A request arriving
while a rebuild runs overwrites the pending slot instead of queueing, so
any burst during a build causes exactly one follow-up build.

A failed rebuild is logged and changes nothing: the previous config,
watchers and output keep being used.
"""

import asyncio
import logging
import signal
from contextlib import suppress
from pathlib import Path
from typing import Awaitable, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from docia.config import load_config
from docia.errors import RebuildFailure, WatchError
from docia.pipeline import build_site
from docia.static import create_app, create_server

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.12
WATCH_CHECK_INTERVAL_SECONDS = 2.0
_IGNORED_EVENT_TYPES = {"opened", "closed", "closed_no_write"}


# ---------------------------------------------------------------------------
# Filesystem watching
# ---------------------------------------------------------------------------

class _ForwardingHandler(FileSystemEventHandler):
    """Turns watchdog events into ``"<event>:<path>"`` reasons."""

    def __init__(self, root: Path, notify: Callable[[str], None],
                 only_file: Path | None = None, ignore_under: Path | None = None):
        self.root = root
        self.notify = notify
        self.only_file = only_file
        self.ignore_under = ignore_under

    def _label(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.name

    def on_any_event(self, event):
        if event.event_type in _IGNORED_EVENT_TYPES:
            return
        path = Path(event.src_path)
        if self.only_file is not None and path != self.only_file:
            dest = getattr(event, "dest_path", "")
            if not dest or Path(dest) != self.only_file:
                return
        if self.ignore_under is not None and path.is_relative_to(self.ignore_under):
            return
        self.notify(f"{event.event_type}:{self._label(path)}")


class ObserverWatch:
    """One watchdog observer rooted at a directory (or a single file)."""

    def __init__(self, path: Path, recursive: bool, notify: Callable[[str], None],
                 ignore_under: Path | None = None) -> None:
        self.path = path
        if path.is_file():
            watch_root, only_file, recursive = path.parent, path, False
        else:
            watch_root, only_file = path, None

        handler = _ForwardingHandler(watch_root, notify, only_file, ignore_under)
        self._observer = Observer()
        try:
            self._observer.schedule(handler, str(watch_root), recursive=recursive)
            self._observer.start()
        except OSError as exc:
            raise WatchError(f"Could not watch {path}: {exc}") from exc

    def is_alive(self) -> bool:
        return self._observer.is_alive()

    def close(self) -> None:
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=1)


def observer_watch_factory(path: Path, recursive: bool, notify: Callable[[str], None],
                           ignore_under: Path | None = None) -> ObserverWatch:
    return ObserverWatch(path, recursive, notify, ignore_under)


async def _default_build(config):
    _, result = await build_site(config)
    return result


# ---------------------------------------------------------------------------
# Dev loop
# ---------------------------------------------------------------------------

class DevLoop:
    """Serialised watch/debounce/rebuild state machine.

    Args:
        config_loader:   Zero-argument callable returning a fresh
                         ``ResolvedConfig``; called on every rebuild.
        build:           Coroutine function ``config → BuildResult``.
        watch_factory:   ``(path, recursive, notify, ignore_under) → handle``
                         where handle has ``close()``.
        debounce:        Quiet period in seconds before a rebuild.
        watch_check_interval:
                         Seconds between watcher health checks.  Handles
                         exposing ``is_alive()`` that report ``False`` are
                         logged as ``WatchError`` and dropped.
    """

    def __init__(
        self,
        config_loader: Callable,
        build: Callable[..., Awaitable] = _default_build,
        watch_factory: Callable = observer_watch_factory,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        watch_check_interval: float = WATCH_CHECK_INTERVAL_SECONDS,
    ) -> None:
        self._load_config = config_loader
        self._build = build
        self._watch_factory = watch_factory
        self.debounce = debounce
        self.watch_check_interval = watch_check_interval
        self.watch_errors: list[WatchError] = []
        self._watch_check_timer: asyncio.TimerHandle | None = None

        self.config = None
        self.watchers: list = []
        self.building = False
        self.pending_reason: str | None = None
        self.rebuild_count = 0
        self.last_result = None
        self.last_error: RebuildFailure | None = None
        self.server = None

        self._timer: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._stopped = asyncio.Event()
        self._shutting_down = False
        self._task: asyncio.Task | None = None

    # -- lifecycle ---------------------------------------------------------

    async def start(self):
        """Load config, run the initial build and arm the watchers.

        Errors from the initial build propagate: there is nothing to serve.
        """
        self._loop = asyncio.get_running_loop()
        config = await asyncio.to_thread(self._load_config)
        self.last_result = await self._build(config)
        self.config = config
        self.refresh_watchers(config)
        self._schedule_watch_check()
        return self.last_result

    async def shutdown(self) -> None:
        """Stop timer, watchers and server.  Safe to call more than once."""
        if self._shutting_down:
            return
        self._shutting_down = True

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._watch_check_timer is not None:
            self._watch_check_timer.cancel()
            self._watch_check_timer = None
        self.pending_reason = None
        self.close_watchers()
        if self.server is not None:
            self.server.should_exit = True
        if not self.building:
            self._idle.set()
        self._stopped.set()
        logger.info("Dev server stopped.")

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no rebuild is running or pending."""
        await self._idle.wait()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError):
                loop.add_signal_handler(sig, self._on_signal)

    def _on_signal(self) -> None:
        asyncio.ensure_future(self.shutdown())

    # -- watchers ----------------------------------------------------------

    def close_watchers(self) -> None:
        for handle in self.watchers:
            try:
                handle.close()
            except Exception as exc:
                logger.error("Could not close watcher: %s", exc)
        self.watchers = []

    def refresh_watchers(self, config) -> None:
        """Replace every watcher with new ones rooted at *config*'s paths."""
        self.close_watchers()

        targets = [(config.src_dir, True), (config.public_dir, True)]
        if config.config_file is not None:
            targets.append((config.config_file, False))

        for path, recursive in targets:
            if not path.exists():
                continue
            try:
                handle = self._watch_factory(path, recursive, self._notify_threadsafe, config.out_dir)
            except (WatchError, OSError) as exc:
                logger.error("Watcher error on %s: %s", path, exc)
                continue
            self.watchers.append(handle)

    def check_watchers(self) -> list[WatchError]:
        """Drop watchers whose observer died after being armed.

        Each dead watcher is logged and recorded in ``watch_errors``; the
        loop keeps running on the remaining ones.
        """
        failures = []
        for handle in list(self.watchers):
            is_alive = getattr(handle, "is_alive", None)
            if is_alive is None or is_alive():
                continue
            error = WatchError(f"Watcher on {getattr(handle, 'path', handle)} stopped unexpectedly.")
            logger.error("%s", error)
            try:
                handle.close()
            except Exception as exc:
                logger.error("Could not close watcher: %s", exc)
            self.watchers.remove(handle)
            failures.append(error)
        self.watch_errors.extend(failures)
        return failures

    def _schedule_watch_check(self) -> None:
        if self._shutting_down or self._loop is None or self.watch_check_interval <= 0:
            return
        self._watch_check_timer = self._loop.call_later(
            self.watch_check_interval, self._watch_check_elapsed
        )

    def _watch_check_elapsed(self) -> None:
        self._watch_check_timer = None
        self.check_watchers()
        self._schedule_watch_check()

    def _notify_threadsafe(self, reason: str) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.notify, reason)

    # -- debounce + serialisation -----------------------------------------

    def notify(self, reason: str) -> None:
        """Record a raw filesystem event and (re)start the debounce timer."""
        if self._shutting_down:
            return
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self.check_watchers()
        if self._timer is not None:
            self._timer.cancel()
        self._idle.clear()
        self._timer = loop.call_later(self.debounce, self._debounce_elapsed, reason)

    def _debounce_elapsed(self, reason: str) -> None:
        self._timer = None
        self.request_rebuild(reason)

    def request_rebuild(self, reason: str) -> None:
        """Start a rebuild now, or park *reason* if one is already running."""
        if self._shutting_down:
            return
        if self.building:
            self.pending_reason = reason
            return

        self.building = True
        self._idle.clear()
        self._task = asyncio.ensure_future(self._rebuild(reason))

    async def _rebuild(self, reason: str) -> None:
        try:
            config = await asyncio.to_thread(self._load_config)
            result = await self._build(config)
            self.config = config
            self.last_result = result
            self.last_error = None
            self.rebuild_count += 1
            if not self._shutting_down:
                self.refresh_watchers(config)
            changed_from = reason.strip() or "file change"
            logger.info(
                "Rebuilt %s pages (%s) -> %s",
                getattr(result, "page_count", "?"), changed_from, config.out_dir,
            )
        except Exception as exc:
            self.last_error = RebuildFailure(f"Rebuild failed: {exc}")
            logger.error("%s", self.last_error)
        finally:
            self.building = False
            if self.pending_reason is not None and not self._shutting_down:
                next_reason = self.pending_reason
                self.pending_reason = None
                self.request_rebuild(next_reason)
            elif self._timer is None:
                self._idle.set()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def docs_url(config, host: str, port: int) -> str:
    base = "/" if config.base_path == "/" else config.base_path + "/"
    return f"http://{host}:{port}{base}"


async def run_dev_server(cwd: Path, config_file: str | None, host: str, port: int,
                         debounce: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
    """Build, serve with caching disabled, and rebuild on change until a signal."""
    dev = DevLoop(lambda: load_config(cwd, config_file), debounce=debounce)
    result = await dev.start()

    app = create_app(lambda: dev.config, no_cache=True)
    dev.server = create_server(app, host, port)
    dev.install_signal_handlers()

    config = dev.config
    logger.info("Config: %s", config.config_file or "built-in defaults")
    logger.info("Source dir: %s", config.src_dir)
    logger.info("Output dir: %s", config.out_dir)
    logger.info("Built %d pages.", result.page_count)
    logger.info("Listening on %s", docs_url(config, host, port))
    logger.info("Watching for changes. Press Ctrl+C to stop.")

    try:
        await dev.server.serve()
    finally:
        await dev.shutdown()
