"""
Static file serving for built docia sites.

``resolve_static_path`` maps a request path to a file under the output
dir.  It never raises for bad input and never returns a path outside the
output dir: undecodable paths, paths outside the base path and traversal
attempts all come back as ``None``, which the HTTP layer turns into a 404.

Candidate order for a request remainder ``r``:
  - ""          → index.html
  - "r/"        → r/index.html
  - "r.ext"     → r.ext
  - "r"         → r.html (flat URLs only), r/index.html, r.html, r
"""

import asyncio
import contextlib
import html
import logging
import re
from pathlib import Path
from typing import Callable
from urllib.parse import unquote

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse

from docia.config import normalize_base_path
from docia.paths import normalize_relative

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.[^./]+$")

NOT_FOUND_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>404 Not Found</title>
</head>
<body>
<main>
<h1>Page not found</h1>
<p>No static file exists for <code>{path}</code>.</p>
</main>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def strip_base_path(request_path: str, base_path: str) -> str | None:
    """Return the decoded, normalised remainder below the base path.

    A trailing ``/`` on the request is kept on the remainder so directory
    requests can be told apart from file requests.
    """
    try:
        decoded = unquote(request_path, errors="strict")
    except UnicodeDecodeError:
        return None
    if "\x00" in decoded or not decoded.startswith("/"):
        return None

    base = normalize_base_path(base_path)
    if base == "/":
        remainder = decoded[1:]
    elif decoded in (base, base + "/"):
        return ""
    elif decoded.startswith(base + "/"):
        remainder = decoded[len(base) + 1:]
    else:
        return None

    normalized = normalize_relative(remainder)
    if normalized is None:
        return None
    if normalized and remainder.endswith("/"):
        normalized += "/"
    return normalized


def candidate_paths(remainder: str, pretty_urls: bool) -> list[str]:
    if not remainder:
        return ["index.html"]
    if remainder.endswith("/"):
        return [remainder + "index.html"]
    if _EXTENSION_RE.search(remainder):
        return [remainder]

    candidates = []
    if not pretty_urls:
        candidates.append(remainder + ".html")
    candidates += [remainder + "/index.html", remainder + ".html", remainder]
    # keep first occurrence
    return list(dict.fromkeys(candidates))


def resolve_static_path(request_path: str, out_dir: Path, base_path: str = "/", pretty_urls: bool = True) -> Path | None:
    """Find the file under *out_dir* that answers *request_path*.

    Args:
        request_path: Raw (percent-encoded) URL path of the request.
        out_dir:      Absolute output directory of the last build.
        base_path:    Configured site base path.
        pretty_urls:  Whether the site was built with directory routes.

    Returns:
        Absolute path of an existing file, or ``None`` (not found).
    """
    remainder = strip_base_path(request_path, base_path)
    if remainder is None:
        return None

    root = Path(out_dir).resolve()
    for candidate in candidate_paths(remainder, pretty_urls):
        path = (root / candidate).resolve()
        if not path.is_relative_to(root):
            continue
        if path.is_file():
            return path
    return None


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------

def not_found_response(path: str) -> HTMLResponse:
    return HTMLResponse(
        NOT_FOUND_TEMPLATE.format(path=html.escape(path)),
        status_code=404,
        headers={"cache-control": "no-store"},
    )


def _raw_request_path(request: Request) -> str:
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return request.url.path


def create_app(get_config: Callable, no_cache: bool = False) -> FastAPI:
    """Build the catch-all static file app.

    *get_config* is called per request so the dev loop can swap in a
    reloaded configuration between builds.
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def serve_static(request: Request, path: str):
        config = get_config()
        request_path = _raw_request_path(request)
        resolved = await asyncio.to_thread(
            resolve_static_path,
            request_path,
            config.out_dir,
            config.base_path,
            config.pretty_urls,
        )
        if resolved is None:
            return not_found_response(unquote(request_path))

        headers = {"cache-control": "no-store"} if no_cache else None
        return FileResponse(resolved, headers=headers)

    return app


class StaticServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


def create_server(app: FastAPI, host: str, port: int) -> StaticServer:
    config = uvicorn.Config(app, host=host, port=port, log_level="warning", lifespan="off")
    return StaticServer(config)
