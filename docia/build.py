"""
Command line interface for docia.

Usage:
    docia build
    docia build --config site/docia.yaml --quiet
    docia serve --port 4000 --build
    docia dev --host 0.0.0.0 --port 3000
    docia check
    docia init my-docs --title "My Docs"
    docia new "guides/Caching" --summary
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from contextlib import suppress
from pathlib import Path

from docia import __version__
from docia.check import check_project
from docia.config import load_config
from docia.dev import run_dev_server
from docia.errors import DociaError
from docia.pipeline import ProgressEvent, build_site
from docia.scaffold import create_chapter, init_project
from docia.static import create_app, create_server

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_HOST = "127.0.0.1"
DEFAULT_SERVE_PORT = 4000
DEFAULT_DEV_PORT = 3000


def _validate_port(port: int) -> int:
    if not 1 <= port <= 65535:
        raise DociaError(f"Invalid port: {port}. Expected a value between 1 and 65535.")
    return port


def print_progress(event: ProgressEvent) -> None:
    if event.status == "start":
        print(f"[{event.phase}] ...")
    elif event.status == "progress":
        print(f"  [{event.phase}] {event.current}/{event.total}")
    else:
        print(f"[{event.phase}] done.")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_build(args) -> int:
    config = load_config(Path.cwd(), args.config)
    on_progress = None if args.quiet else print_progress
    _, result = asyncio.run(build_site(config, on_progress=on_progress))

    print(f"Built {result.page_count} pages → {config.out_dir}")
    print(
        f"  {result.client_asset_count} client assets, "
        f"{result.search_document_count} search entries, "
        f"{len(result.seo_files)} SEO files, "
        f"{len(result.output_files)} files total "
        f"({result.timings_ms.get('total', 0):.0f} ms)"
    )
    return 0


async def _serve(config, host: str, port: int) -> None:
    server = create_server(create_app(lambda: config), host, port)
    loop = asyncio.get_running_loop()
    stopping = False

    def stop() -> None:
        nonlocal stopping
        if stopping:
            return
        stopping = True
        server.should_exit = True

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop)
    await server.serve()


def cmd_serve(args) -> int:
    port = _validate_port(args.port)
    config = load_config(Path.cwd(), args.config)

    if args.build:
        asyncio.run(build_site(config))

    if not (config.out_dir / "index.html").is_file():
        raise DociaError(
            f"No build output found in `{config.out_dir}`. "
            "Run `docia build` first or pass `--build`."
        )

    base = "/" if config.base_path == "/" else config.base_path + "/"
    print("Serving static docs.")
    print(f"- Config: {config.config_file or 'built-in defaults'}")
    print(f"- Static output dir: {config.out_dir}")
    print(f"- URL: http://{args.host}:{port}{base}")
    print("- Press Ctrl+C to stop.")

    asyncio.run(_serve(config, args.host, port))
    return 0


def cmd_dev(args) -> int:
    port = _validate_port(args.port)
    asyncio.run(run_dev_server(Path.cwd(), args.config, args.host, port))
    return 0


def cmd_check(args) -> int:
    config = load_config(Path.cwd(), args.config)
    issues = check_project(config)
    if not issues:
        print("No issues found.")
        return 0

    for issue in issues:
        print(issue)
    print(f"\n{len(issues)} issue(s) found.", file=sys.stderr)
    return 1


def cmd_init(args) -> int:
    cwd = Path.cwd()
    target = (cwd / args.directory).resolve()
    init_project(
        target,
        title=args.title,
        description=args.description,
        language=args.lang,
        force=args.force,
    )

    display = os.path.relpath(target, cwd)
    print(f"Initialized docia project in {display}.")
    print("Next steps:")
    print(f"- cd {display}")
    print("- docia dev")
    return 0


def cmd_new(args) -> int:
    cwd = Path.cwd()
    config = load_config(cwd, args.config)
    path, added = create_chapter(
        config.src_dir,
        args.name,
        title=args.title,
        force=args.force,
        add_to_summary=args.summary,
    )

    print(f"Created chapter at {os.path.relpath(path, cwd)}.")
    if added:
        print("Added chapter entry to SUMMARY.md.")
    elif not args.summary:
        print(f"Remember to add this chapter to {os.path.relpath(config.src_dir / 'SUMMARY.md', cwd)}.")
    return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="docia",
        description="Build a static documentation site from a markdown book.",
    )
    ap.add_argument("--version", action="version", version=f"docia {__version__}")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)

    def add_config(p):
        p.add_argument(
            "-c", "--config",
            default=None,
            help="Path to the config file (default: docia.yaml in the current directory).",
        )

    p_build = sub.add_parser("build", help="Build the static site.")
    add_config(p_build)
    p_build.add_argument("-q", "--quiet", action="store_true", help="Hide per-phase progress.")
    p_build.set_defaults(func=cmd_build)

    p_serve = sub.add_parser("serve", help="Serve the built output.")
    add_config(p_serve)
    p_serve.add_argument("--host", default=DEFAULT_HOST)
    p_serve.add_argument("-p", "--port", type=int, default=DEFAULT_SERVE_PORT)
    p_serve.add_argument("-b", "--build", action="store_true", help="Build before serving.")
    p_serve.set_defaults(func=cmd_serve)

    p_dev = sub.add_parser("dev", help="Build, serve and rebuild on change.")
    add_config(p_dev)
    p_dev.add_argument("--host", default=DEFAULT_HOST)
    p_dev.add_argument("-p", "--port", type=int, default=DEFAULT_DEV_PORT)
    p_dev.set_defaults(func=cmd_dev)

    p_check = sub.add_parser("check", help="Validate outline, chapters and links.")
    add_config(p_check)
    p_check.set_defaults(func=cmd_check)

    p_init = sub.add_parser("init", help="Create a new docia project scaffold.")
    p_init.add_argument("directory", nargs="?", default=".")
    p_init.add_argument("-t", "--title", default=None, help="Site title (default: from directory name).")
    p_init.add_argument("-d", "--description", default=None)
    p_init.add_argument("--lang", default="en", help="Site language (default: en).")
    p_init.add_argument("-f", "--force", action="store_true", help="Overwrite existing files.")
    p_init.set_defaults(func=cmd_init)

    p_new = sub.add_parser("new", help="Create a new chapter in the source directory.")
    add_config(p_new)
    p_new.add_argument("name", help='Chapter name or path, e.g. "guides/Caching" or "faq.md".')
    p_new.add_argument("-t", "--title", default=None, help="Chapter title (default: from name).")
    p_new.add_argument("-s", "--summary", action="store_true", help="Append the chapter to SUMMARY.md.")
    p_new.add_argument("-f", "--force", action="store_true", help="Overwrite an existing chapter.")
    p_new.set_defaults(func=cmd_new)

    return ap


def main(argv: list[str] | None = None) -> int:
    args = make_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(message)s",
    )

    try:
        return args.func(args)
    except DociaError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
