"""URL arithmetic for package locations and module specifiers."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote, unquote, urljoin, urlparse


def resolve_location(rel: str, base: str) -> str:
    """Resolve *rel* against the fully qualified URL *base*."""
    return urljoin(base, rel)


def basename(location: str) -> str:
    """Return the last path segment of *location*, ignoring a trailing slash."""
    pathname = urlparse(location).path.rstrip("/")
    index = pathname.rfind("/")
    if index < 0:
        return pathname
    return pathname[index + 1 :]


def location_from_path(path: Path | str, *, directory: bool = False) -> str:
    """Return the ``file://`` URL for *path*.

    Directory locations always end with a slash so that relative resolution
    descends into them. ``@`` stays literal, as in Node.js file URLs for
    scoped packages.
    """
    posix = Path(path).absolute().as_posix()
    if not posix.startswith("/"):
        posix = f"/{posix}"
    url = f"file://{quote(posix, safe='/@')}"
    if directory and not url.endswith("/"):
        url += "/"
    return url


def path_from_location(location: str) -> Path:
    """Return the filesystem path for a ``file://`` *location*."""
    return Path(unquote(urlparse(location).path))


def is_relative(specifier: str) -> bool:
    return specifier == "." or specifier.startswith("./")


def relativize(specifier: str) -> str:
    """Prefix a package-relative path with ``./`` unless it already is relative."""
    if specifier.startswith("./") or specifier.startswith("../"):
        return specifier
    if specifier == ".":
        return specifier
    return f"./{specifier}"


def join_specifier(base: str, subpath: str) -> str:
    """Join a package name and an export subpath.

    ``join_specifier("foo", ".")`` is ``"foo"`` and
    ``join_specifier("foo", "./bar")`` is ``"foo/bar"``.
    """
    if subpath == ".":
        return base
    if subpath.startswith("./"):
        return f"{base}/{subpath[2:]}"
    raise ValueError(
        f"Cannot join {base!r} with {subpath!r}, subpath must be relative"
    )
