"""Find installed dependencies the way Node.js does."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from compartmap.locations import basename, resolve_location
from compartmap.manifest import ReadManifestFn
from compartmap.model import FoundPackage

DEPENDENCY_DIRECTORY = "node_modules"

CanonicalFn = Callable[[str], Awaitable[str]]


async def find_package(
    read_manifest: ReadManifestFn,
    canonical: CanonicalFn,
    directory: str,
    name: str,
) -> FoundPackage | None:
    """Search *directory* and its ancestors for ``node_modules/<name>/``.

    Node.js does not require the probed directories to be packages, but these
    are the locations package managers drop packages so that Node.js finds
    them. A ``node_modules`` ancestor is stepped over, since nothing nests
    ``node_modules/node_modules``.
    """
    while True:
        package_location = await canonical(
            resolve_location(f"{DEPENDENCY_DIRECTORY}/{name}/", directory)
        )
        manifest = await read_manifest(package_location)
        if manifest is not None:
            return FoundPackage(location=package_location, manifest=manifest)

        parent = resolve_location("../", directory)
        if parent == directory:
            return None
        directory = parent

        if basename(directory) == DEPENDENCY_DIRECTORY:
            parent = resolve_location("../", directory)
            if parent == directory:
                return None
            directory = parent
