"""
Asset-to-route matching and published name derivation.
"""

from __future__ import annotations

import asyncio
import posixpath
import re
from pathlib import Path
from typing import List, Union

from ..core.errors import FileReadError
from ..core.types import Asset
from ..storage.config import DEFAULT_PATTERN, Route, RouteSet

_DRIVE = re.compile(r"^[A-Za-z]:/")


def _posix(value: Union[str, Path]) -> str:
    return str(value).replace("\\", "/")


def match_target(asset: Asset) -> str:
    """String tested against route patterns: the physical path when known."""
    if asset.path is not None:
        return _posix(asset.path)
    return _posix(asset.name or asset.key)


def published_name(asset: Asset, output_root: Union[str, Path]) -> str:
    """
    Logical names are used verbatim. Otherwise the physical path relative
    to the output root, with ``/`` separators; files outside the output
    root publish under their base name.
    """
    if asset.name:
        return asset.name

    if asset.path is None:
        return _posix(asset.key).lstrip("/")

    path = _posix(asset.path)
    root = _posix(output_root).rstrip("/")

    if root and path.startswith(root + "/"):
        return path[len(root) + 1:]

    if not posixpath.isabs(path) and not _DRIVE.match(path):
        normalized = posixpath.normpath(path)
        if not normalized.startswith("../"):
            return normalized

    return posixpath.basename(path)


def matching_routes(asset: Asset, routes: RouteSet) -> List[Route]:
    """
    Single-route mode falls back to the default script/style pattern;
    multi-route mode tests every route independently.
    """
    target = match_target(asset)

    if isinstance(routes, list):
        return [route for route in routes if route.matches(target)]

    return [routes] if routes.matches(target, default=DEFAULT_PATTERN) else []


async def read_asset(asset: Asset) -> bytes:
    """
    Raises:
        FileReadError
    """
    content = asset.content

    try:
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode("utf-8")
        if content is not None and hasattr(content, "read"):
            data = await asyncio.to_thread(content.read)
            return data.encode("utf-8") if isinstance(data, str) else data
        if asset.path is not None:
            return await asyncio.to_thread(Path(asset.path).read_bytes)
    except (OSError, ValueError) as e:
        raise FileReadError(str(e), file_name=asset.name or asset.key) from e

    raise FileReadError("asset has neither content nor a path", file_name=asset.name or asset.key)


__all__ = ["match_target", "published_name", "matching_routes", "read_asset"]
