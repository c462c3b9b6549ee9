"""Read, parse and memoize package.json manifests."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from compartmap.errors import ManifestNotFoundError, ManifestParseError
from compartmap.locations import resolve_location
from compartmap.powers import ReadPowers, unpack_read_powers

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

ReadManifestFn = Callable[[str], Awaitable["dict | None"]]


def parse_manifest(data: bytes | str, location: str) -> dict:
    """Parse manifest *data* read from *location* into a dict."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        manifest = json.loads(data)
    except json.JSONDecodeError as e:
        raise ManifestParseError(location, str(e)) from e
    if not isinstance(manifest, dict):
        raise ManifestParseError(location, "expected a JSON object")
    return manifest


class ManifestReader:
    """Memoized manifest reads for one resolution run.

    The cache holds the in-flight task for each package location, so
    concurrent readers of the same location share one read.
    """

    def __init__(self, maybe_read: Callable[[str], Awaitable[bytes | None]]):
        self._maybe_read = maybe_read
        self._memo: dict[str, asyncio.Future] = {}

    def seed(self, package_location: str, manifest: dict) -> None:
        """Pre-populate the cache with an already parsed manifest."""
        future = asyncio.get_running_loop().create_future()
        future.set_result(manifest)
        self._memo[package_location] = future

    async def read(self, package_location: str) -> dict | None:
        """Return the manifest of the package at *package_location*, or None."""
        future = self._memo.get(package_location)
        if future is None:
            future = asyncio.ensure_future(self._read(package_location))
            self._memo[package_location] = future
        return await future

    async def _read(self, package_location: str) -> dict | None:
        manifest_location = resolve_location(MANIFEST_NAME, package_location)
        data = await self._maybe_read(manifest_location)
        if data is None:
            return None
        return parse_manifest(data, manifest_location)

    def __len__(self) -> int:
        return len(self._memo)


async def search_descriptor(
    location: str, read_manifest: ReadManifestFn
) -> tuple[str, dict] | None:
    """Find the nearest manifest at or above the directory of *location*.

    Returns ``(package_location, manifest)`` or None if the filesystem root is
    reached without finding one.
    """
    directory = resolve_location("./", location)
    while True:
        manifest = await read_manifest(directory)
        if manifest is not None:
            return directory, manifest
        parent = resolve_location("../", directory)
        if parent == directory:
            return None
        directory = parent


@dataclass
class SearchResult:
    """The package enclosing an entry module."""

    package_location: str
    manifest_location: str
    manifest_text: str
    module_specifier: str


async def search(read_powers: ReadPowers | None, module_location: str) -> SearchResult:
    """Find the package that contains *module_location*.

    The module specifier is the module's path relative to the package root,
    prefixed with ``./``.
    """
    powers = unpack_read_powers(read_powers)
    directory = resolve_location("./", module_location)
    while True:
        manifest_location = resolve_location(MANIFEST_NAME, directory)
        data = await powers.maybe_read(manifest_location)
        if data is not None:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
            return SearchResult(
                package_location=directory,
                manifest_location=manifest_location,
                manifest_text=text,
                module_specifier=f"./{module_location[len(directory):]}",
            )
        parent = resolve_location("../", directory)
        if parent == directory:
            raise ManifestNotFoundError(
                f"Cannot find package.json along path to module {module_location}"
            )
        directory = parent
