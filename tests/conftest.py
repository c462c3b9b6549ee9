from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from compartmap.locations import location_from_path


class MemoryReadPowers:
    """Read powers over an in-memory ``{location: bytes}`` table.

    Counts reads per location so tests can check memoization. *delays* holds
    per-location latency in seconds; ``completed`` lists reads that finished.
    """

    def __init__(
        self,
        files: dict[str, bytes],
        aliases: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.files = files
        self.aliases = aliases or {}
        self.delays = delays or {}
        self.reads: dict[str, int] = {}
        self.completed: list[str] = []

    async def maybe_read(self, location: str) -> bytes | None:
        self.reads[location] = self.reads.get(location, 0) + 1
        delay = self.delays.get(location)
        if delay:
            await asyncio.sleep(delay)
        self.completed.append(location)
        return self.files.get(location)

    async def canonical(self, location: str) -> str:
        for alias, target in self.aliases.items():
            if location.startswith(alias):
                return target + location[len(alias):]
        return location


@pytest.fixture
def write_package(tmp_path: Path):
    """Return a helper that writes ``<tmp>/<rel>/package.json`` (and files)."""

    def _write(rel: str, manifest: dict, files: dict[str, str] | None = None) -> Path:
        package_dir = tmp_path / rel
        package_dir.mkdir(parents=True, exist_ok=True)
        (package_dir / "package.json").write_text(json.dumps(manifest))
        for name, text in (files or {}).items():
            target = package_dir / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text)
        return package_dir

    return _write


@pytest.fixture
def loc():
    """Return a helper that turns a directory path into a package location."""

    def _loc(path: Path) -> str:
        return location_from_path(path, directory=True)

    return _loc


MEMORY_ROOT = "file:///root/"


@pytest.fixture
def memory_tree():
    """Return a helper building MemoryReadPowers from ``{package dir: manifest}``.

    Package dirs are relative to ``file:///root/``; ``""`` is the root itself.
    """

    def _tree(
        packages: dict[str, dict],
        aliases: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ):
        files = {}
        for rel, manifest in packages.items():
            rel = rel.strip("/")
            directory = MEMORY_ROOT + (f"{rel}/" if rel else "")
            files[directory + "package.json"] = json.dumps(manifest).encode()
        return MemoryReadPowers(files, aliases, delays)

    return _tree
