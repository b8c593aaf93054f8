"""
Client asset bundling.

The browser side of a docia site is one script and one stylesheet that
ship inside the package (``docia/client/``).  Bundling copies them into
``<outDir>/assets/`` under content-hashed names so browsers can cache
them forever and still pick up changes after an upgrade.

    assets/main-1a2b3c4d.js
    assets/styles-9f8e7d6c.css
"""

import hashlib
from dataclasses import dataclass, field
from pathlib import Path

from docia.errors import BundleFailure
from docia.resolver import to_base_path_href

CLIENT_DIR = Path(__file__).resolve().parent / "client"
ASSETS_DIR_NAME = "assets"
CLIENT_ENTRY = "main.js"
CLIENT_STYLES = "styles.css"
HASH_LENGTH = 8


@dataclass
class ClientBundle:
    script_href: str
    stylesheet_href: str | None
    outputs: list[Path] = field(default_factory=list)


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:HASH_LENGTH]


def _emit(source: Path, out_dir: Path) -> Path:
    data = source.read_bytes()
    target = out_dir / ASSETS_DIR_NAME / f"{source.stem}-{content_hash(data)}{source.suffix}"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return target


def bundle_client_assets(out_dir: Path, base_path: str = "/", client_dir: Path = CLIENT_DIR) -> ClientBundle:
    """Write the hashed client script and stylesheet into *out_dir*.

    Raises:
        BundleFailure: the client entry script is missing.
    """
    entry = client_dir / CLIENT_ENTRY
    if not entry.is_file():
        raise BundleFailure(f"Failed to bundle client assets: missing entry {entry}")

    script = _emit(entry, out_dir)
    outputs = [script]

    stylesheet_href = None
    styles = client_dir / CLIENT_STYLES
    if styles.is_file():
        stylesheet = _emit(styles, out_dir)
        outputs.append(stylesheet)
        stylesheet_href = to_base_path_href(base_path, "/" + stylesheet.relative_to(out_dir).as_posix())

    return ClientBundle(
        script_href=to_base_path_href(base_path, "/" + script.relative_to(out_dir).as_posix()),
        stylesheet_href=stylesheet_href,
        outputs=outputs,
    )
