"""Infer a package's exported subpaths and self-referential aliases.

Follows the Node.js interpretation of ``main``, ``module``, ``exports``,
``imports`` and (under the ``browser`` condition) ``browser`` fields.
"""

from __future__ import annotations

import json
from collections.abc import Iterator

from compartmap.errors import InvalidExportsError
from compartmap.locations import is_relative, join_specifier, relativize


def _interpret_exports(
    name: str, exports, conditions: set[str], types: dict[str, str]
) -> Iterator[tuple[str, str]]:
    """Yield ``(subpath, target)`` pairs from an ``exports`` value."""
    if isinstance(exports, list):
        # Fallback array: the first alternative that yields anything wins.
        for section in exports:
            results = list(_interpret_exports(name, section, conditions, types))
            if results:
                yield from results
                return
        return
    if exports is None:
        # null excludes the subpath
        return
    if isinstance(exports, str):
        yield name, relativize(exports)
        return
    if not isinstance(exports, dict):
        raise InvalidExportsError(
            f"Cannot interpret package.json exports property for package {name!r}, "
            f"exports field must be a string, object, or array, "
            f"got {json.dumps(exports)}"
        )
    for key, value in exports.items():
        if is_relative(key):
            subpath = key if name == "." else join_specifier(name, key)
            yield from _interpret_exports(subpath, value, conditions, types)
        elif key in conditions:
            if key == "import" and isinstance(value, str):
                # "import" hints that the target is an ECMAScript module,
                # whatever its extension suggests.
                types[relativize(value)] = "mjs"
            yield from _interpret_exports(name, value, conditions, types)
            # Only the first satisfied condition applies.
            break


def infer_exports_entries(
    manifest: dict, conditions: set[str], types: dict[str, str]
) -> Iterator[tuple[str, str]]:
    """Yield exported subpaths, lowest precedence first."""
    main = manifest.get("main")
    module = manifest.get("module")
    exports = manifest.get("exports")
    if module is not None and "import" in conditions:
        spec = relativize(module)
        types[spec] = "mjs"
        yield ".", spec
    elif main is not None:
        yield ".", relativize(main)
    if exports is not None:
        yield from _interpret_exports(".", exports, conditions, types)


def infer_exports(
    manifest: dict, conditions: set[str], types: dict[str, str]
) -> dict[str, str]:
    return dict(infer_exports_entries(manifest, conditions, types))


def _resolve_condition(value, conditions: set[str]):
    """Collapse a conditional ``imports`` target to a single string, or None."""
    if isinstance(value, str) or value is None:
        return value
    if isinstance(value, list):
        for item in value:
            resolved = _resolve_condition(item, conditions)
            if resolved is not None:
                return resolved
        return None
    if isinstance(value, dict):
        for key, nested in value.items():
            if key in conditions:
                return _resolve_condition(nested, conditions)
        return None
    raise InvalidExportsError(
        f"Cannot interpret package.json imports target {json.dumps(value)}"
    )


def _interpret_imports(
    name: str, imports, conditions: set[str]
) -> Iterator[tuple[str, str]]:
    """Yield ``(#specifier, target)`` pairs from an ``imports`` field."""
    if not isinstance(imports, dict):
        raise InvalidExportsError(
            f"Cannot interpret package.json imports property for package {name!r}, "
            f"must be an object, got {json.dumps(imports)}"
        )
    for specifier, value in imports.items():
        if not specifier.startswith("#"):
            raise InvalidExportsError(
                f"Cannot interpret package.json imports key {specifier!r} for "
                f"package {name!r}, keys must start with #"
            )
        target = _resolve_condition(value, conditions)
        if target is not None:
            yield specifier, target


def _interpret_browser_field(
    name: str, browser, main: str = "index.js"
) -> Iterator[tuple[str, str]]:
    """Yield replacements described by a ``browser`` field."""
    if isinstance(browser, str):
        yield ".", relativize(browser)
        return
    if not isinstance(browser, dict):
        raise InvalidExportsError(
            f"Cannot interpret package.json browser property for package {name!r}, "
            f"must be string or object, got {json.dumps(browser)}"
        )
    main_path = relativize(main)
    for key, value in browser.items():
        if value is False or value is None:
            # Modules replaced with an empty object are not supported.
            continue
        if not isinstance(value, str):
            continue
        if _is_path(key):
            key = relativize(key)
            yield ("." if key == main_path else key), relativize(value)
        else:
            # A dependency replaced by another dependency or by a local file.
            yield key, relativize(value) if _is_path(value) else value


def _is_path(specifier: str) -> bool:
    return specifier.startswith(("./", "../")) or specifier.endswith(".js")


def infer_exports_and_aliases(
    manifest: dict,
    external_aliases: dict[str, str],
    internal_aliases: dict[str, str],
    conditions: set[str],
    types: dict[str, str],
) -> None:
    """Populate *external_aliases*, *internal_aliases* and *types* for a package."""
    name = manifest.get("name", "")
    main = manifest.get("main")
    module = manifest.get("module")
    exports = manifest.get("exports")

    external_aliases.update(infer_exports_entries(manifest, conditions, types))

    # A package without module/exports exposes main (or index.js) as its root.
    if module is None and exports is None:
        default_module = relativize(main) if main is not None else "./index.js"
        external_aliases["."] = default_module
        # CommonJS require(".") reaches the same module from inside.
        if manifest.get("type") != "module":
            internal_aliases["."] = default_module

    imports = manifest.get("imports")
    if imports is not None:
        internal_aliases.update(_interpret_imports(name, imports, conditions))

    browser = manifest.get("browser")
    if "browser" in conditions and browser is not None:
        for specifier, target in _interpret_browser_field(
            name, browser, main if main is not None else "index.js"
        ):
            if is_relative(specifier):
                external_aliases[specifier] = target
            internal_aliases[specifier] = target
