from __future__ import annotations

from pathlib import Path

import pytest

from compartmap.locations import (
    basename,
    is_relative,
    join_specifier,
    location_from_path,
    path_from_location,
    relativize,
    resolve_location,
)


def test_resolve_location_descends_and_ascends() -> None:
    assert (
        resolve_location("node_modules/a/", "file:///app/")
        == "file:///app/node_modules/a/"
    )
    assert resolve_location("../", "file:///app/lib/") == "file:///app/"
    assert resolve_location("package.json", "file:///app/") == "file:///app/package.json"


def test_resolve_location_stops_at_root() -> None:
    assert resolve_location("../", "file:///") == "file:///"
    assert resolve_location("../", "file:///app/") == "file:///"


def test_resolve_location_scoped_name() -> None:
    assert (
        resolve_location("node_modules/@scope/pkg/", "file:///app/")
        == "file:///app/node_modules/@scope/pkg/"
    )


def test_basename_ignores_trailing_slash() -> None:
    assert basename("file:///app/node_modules/") == "node_modules"
    assert basename("file:///app/lib/main.js") == "main.js"
    assert basename("file:///") == ""


def test_location_round_trip(tmp_path: Path) -> None:
    location = location_from_path(tmp_path / "with space", directory=True)
    assert location.startswith("file:///")
    assert location.endswith("/")
    assert path_from_location(location) == tmp_path / "with space"


def test_relativize() -> None:
    assert relativize("index.js") == "./index.js"
    assert relativize("./index.js") == "./index.js"
    assert relativize("../up.js") == "../up.js"


def test_is_relative() -> None:
    assert is_relative(".")
    assert is_relative("./x.js")
    assert not is_relative("dep")
    assert not is_relative("#internal")


def test_join_specifier() -> None:
    assert join_specifier("foo", ".") == "foo"
    assert join_specifier("foo", "./bar") == "foo/bar"
    assert join_specifier("@s/foo", "./a/b.js") == "@s/foo/a/b.js"
    with pytest.raises(ValueError):
        join_specifier("foo", "bar")


def test_location_keeps_scope_marker(tmp_path: Path) -> None:
    location = location_from_path(tmp_path / "node_modules" / "@scope" / "pkg", directory=True)
    assert location.endswith("/node_modules/@scope/pkg/")
    assert "%40" not in location
    assert path_from_location(location) == tmp_path / "node_modules" / "@scope" / "pkg"
