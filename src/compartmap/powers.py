"""Read powers, the I/O capabilities the resolver is given."""

from __future__ import annotations

import asyncio
import os
from typing import Protocol

from compartmap.locations import location_from_path, path_from_location


class ReadPowers(Protocol):
    """Protocol for the asynchronous read capability."""

    async def maybe_read(self, location: str) -> bytes | None:
        """Return the bytes at *location*, or None if nothing is there."""
        ...

    async def canonical(self, location: str) -> str:
        """Return the canonical form of *location* (symlinks resolved)."""
        ...


class FileReadPowers:
    """Read powers over ``file://`` URLs on the local filesystem."""

    async def maybe_read(self, location: str) -> bytes | None:
        path = path_from_location(location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return None

    async def canonical(self, location: str) -> str:
        path = path_from_location(location)
        real = await asyncio.to_thread(os.path.realpath, path)
        return location_from_path(real, directory=location.endswith("/"))


class _NoCanonical:
    """Adapter for read powers that cannot canonicalize."""

    def __init__(self, powers):
        self._powers = powers

    async def maybe_read(self, location: str) -> bytes | None:
        return await self._powers.maybe_read(location)

    async def canonical(self, location: str) -> str:
        return location


def unpack_read_powers(powers) -> ReadPowers:
    """Return *powers* as full read powers, defaulting canonical to identity."""
    if powers is None:
        return FileReadPowers()
    if hasattr(powers, "canonical"):
        return powers
    return _NoCanonical(powers)
