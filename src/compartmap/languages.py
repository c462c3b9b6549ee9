"""Choose the language (parser) for each file extension of a package."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from compartmap.errors import (
    MalformedParserMapError,
    UnknownLanguageError,
    UnknownPackageTypeError,
)

DEFAULT_LANGUAGE_FOR_EXTENSION = {
    "mjs": "mjs",
    "cjs": "cjs",
    "json": "json",
    "text": "text",
    "bytes": "bytes",
}
DEFAULT_COMMONJS_LANGUAGE_FOR_EXTENSION = {"js": "cjs"}
DEFAULT_MODULE_LANGUAGE_FOR_EXTENSION = {"js": "mjs"}

_PARSER_MAP_HINT = (
    "must be an object mapping file extensions to corresponding languages "
    "(for example, mjs for ECMAScript modules, cjs for CommonJS modules, "
    "or json for JSON modules)"
)


@dataclass
class LanguageOptions:
    """Extension tables for built packages and for workspace packages.

    Packages under ``node_modules`` are assumed to be built for npm. Packages
    outside it (the entry package, workspace siblings) may still contain
    sources in languages that compile to JavaScript.
    """

    commonjs_language_for_extension: dict[str, str]
    module_language_for_extension: dict[str, str]
    workspace_commonjs_language_for_extension: dict[str, str]
    workspace_module_language_for_extension: dict[str, str]
    languages: set[str] = field(default_factory=set)


def make_language_options(
    *,
    language_for_extension: Mapping[str, str] | None = None,
    module_language_for_extension: Mapping[str, str] | None = None,
    commonjs_language_for_extension: Mapping[str, str] | None = None,
    workspace_language_for_extension: Mapping[str, str] | None = None,
    workspace_module_language_for_extension: Mapping[str, str] | None = None,
    workspace_commonjs_language_for_extension: Mapping[str, str] | None = None,
    languages: Iterable[str] = (),
) -> LanguageOptions:
    """Layer caller-supplied extension tables over the defaults."""
    extra = dict(language_for_extension or {})
    extra_module = dict(module_language_for_extension or {})
    extra_commonjs = dict(commonjs_language_for_extension or {})
    extra_workspace = dict(workspace_language_for_extension or {})
    extra_workspace_module = dict(workspace_module_language_for_extension or {})
    extra_workspace_commonjs = dict(workspace_commonjs_language_for_extension or {})

    commonjs = {
        **DEFAULT_LANGUAGE_FOR_EXTENSION,
        **extra,
        **DEFAULT_COMMONJS_LANGUAGE_FOR_EXTENSION,
        **extra_commonjs,
    }
    module = {
        **DEFAULT_LANGUAGE_FOR_EXTENSION,
        **extra,
        **DEFAULT_MODULE_LANGUAGE_FOR_EXTENSION,
        **extra_module,
    }
    workspace_commonjs = {
        **commonjs,
        **extra_workspace,
        **extra_workspace_commonjs,
    }
    workspace_module = {
        **module,
        **extra_workspace,
        **extra_workspace_module,
    }

    known = set(languages)
    for table in (commonjs, module, workspace_commonjs, workspace_module):
        known.update(table.values())

    return LanguageOptions(
        commonjs_language_for_extension=commonjs,
        module_language_for_extension=module,
        workspace_commonjs_language_for_extension=workspace_commonjs,
        workspace_module_language_for_extension=workspace_module,
        languages=known,
    )


def infer_parsers(
    manifest: dict, location: str, options: LanguageOptions
) -> dict[str, str]:
    """Return the extension-to-language table for the package at *location*."""
    module_table = options.module_language_for_extension
    commonjs_table = options.commonjs_language_for_extension
    if "/node_modules/" not in location:
        module_table = options.workspace_module_language_for_extension
        commonjs_table = options.workspace_commonjs_language_for_extension

    package_table = manifest.get("parsers", {})
    if not isinstance(package_table, dict) or not all(
        isinstance(v, str) for v in package_table.values()
    ):
        raise MalformedParserMapError(
            f"Cannot interpret parser map {json.dumps(package_table)} of package "
            f"at {location}, {_PARSER_MAP_HINT}"
        )
    invalid = [lang for lang in package_table.values() if lang not in options.languages]
    if invalid:
        raise UnknownLanguageError(
            f"Cannot interpret parser map language values {json.dumps(invalid)} "
            f"of package at {location}, {_PARSER_MAP_HINT}"
        )

    package_type = manifest.get("type")
    if package_type == "module" or manifest.get("module") is not None:
        return {**module_table, **package_table}
    if package_type == "commonjs" or package_type is None:
        return {**commonjs_table, **package_table}
    raise UnknownPackageTypeError(
        f"Cannot infer parser map for package of type {package_type} at {location}"
    )
