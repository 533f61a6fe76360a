"""
Read-only set of static files served for every non-proxied path.

The set is loaded once at startup, either from the ``static`` package data
shipped inside ``edge_gateway`` or from an operator-supplied directory, and
is never written to afterwards.
"""

import logging
import mimetypes
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

logger = logging.getLogger("uvicorn.error")

INDEX_DOCUMENT = "index.html"
DEFAULT_CONTENT_TYPE = "text/plain"


def resolve_asset_path(path: str) -> str:
    """Strip a single leading slash; the empty path resolves to the index document."""
    if path.startswith("/"):
        path = path[1:]
    return path or INDEX_DOCUMENT


def content_type_for(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def _walk(root: Traversable, prefix: str = "") -> Iterator[tuple]:
    for entry in root.iterdir():
        relative = f"{prefix}{entry.name}"
        if entry.is_dir():
            yield from _walk(entry, f"{relative}/")
        elif entry.is_file():
            yield relative, entry.read_bytes()


class StaticAssetSet(Mapping[str, bytes]):
    """Immutable mapping from slash-separated relative path to file content."""

    def __init__(self, files: Optional[Mapping[str, bytes]] = None):
        self._files = MappingProxyType(dict(files or {}))

    @classmethod
    def from_directory(cls, root: Union[str, Path, Traversable]) -> "StaticAssetSet":
        if isinstance(root, str):
            root = Path(root)
        if not root.is_dir():
            raise NotADirectoryError(f"Static asset directory not found: {root}")
        return cls(dict(_walk(root)))

    def __getitem__(self, path: str) -> bytes:
        return self._files[path]

    def __iter__(self):
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"StaticAssetSet({len(self)} files)"


def load_bundled_assets() -> StaticAssetSet:
    """Load the assets packaged under ``edge_gateway/static``."""
    return StaticAssetSet.from_directory(resources.files("edge_gateway") / "static")


def load_assets(static_dir: str = "") -> StaticAssetSet:
    if static_dir:
        assets = StaticAssetSet.from_directory(static_dir)
        logger.debug(f"Loaded {len(assets)} static assets from {static_dir}")
        return assets
    return load_bundled_assets()
