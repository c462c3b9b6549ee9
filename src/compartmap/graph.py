"""Build the package graph by walking node_modules from an entry package.

:func:`build_node` and :func:`gather_dependency` are mutually recursive
coroutines. The keys of the graph are canonical package locations; each node
records a label (informative, not necessarily unique), the location of each
shallow dependency, and the modules the package exports. Sibling dependencies
are gathered concurrently and only meet in the shared manifest cache.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Coroutine, Iterable, Mapping
from dataclasses import dataclass, field

from compartmap.compartment_map import path_compare
from compartmap.errors import (
    AliasTargetMissingError,
    CommonDependencyMissingError,
    DependencyUnresolvedError,
    ManifestNotFoundError,
)
from compartmap.exports import infer_exports_and_aliases
from compartmap.finder import CanonicalFn, find_package
from compartmap.languages import LanguageOptions, infer_parsers
from compartmap.locations import is_relative, resolve_location
from compartmap.manifest import ManifestReader, search_descriptor
from compartmap.model import Graph, PackageNode

logger = logging.getLogger(__name__)

# Always in effect, whatever the caller asks for.
DEFAULT_CONDITIONS = ("import", "default", "endo")


@dataclass
class CommonDependency:
    """A dependency injected into every package, also reachable by *alias*."""

    spec: str
    alias: str


@dataclass
class ResolutionContext:
    """Shared state for one resolution run.

    Nothing here outlives the run, so unrelated resolutions never interfere.
    """

    reader: ManifestReader
    canonical: CanonicalFn
    conditions: set[str]
    language_options: LanguageOptions
    common_dependencies: dict[str, CommonDependency] = field(default_factory=dict)
    strict: bool = False
    graph: Graph = field(default_factory=dict)
    preferred_logical_paths: dict[str, list[str]] = field(default_factory=dict)
    # package location -> {dependency name: location}, aliases excluded
    edges: dict[str, dict[str, str]] = field(default_factory=dict)


def _collect_dependencies(
    manifest: dict,
    common_dependencies: Mapping[str, CommonDependency],
    dev: bool,
) -> tuple[dict[str, str], set[str]]:
    """Merge a manifest's dependency tables, later tables overriding earlier."""
    all_dependencies: dict[str, str] = {}
    optionals: set[str] = set()

    for name, common in common_dependencies.items():
        all_dependencies[name] = common.spec
    all_dependencies.update(manifest.get("dependencies") or {})
    all_dependencies.update(manifest.get("peerDependencies") or {})
    for name, meta in (manifest.get("peerDependenciesMeta") or {}).items():
        if isinstance(meta, dict) and meta.get("optional"):
            optionals.add(name)
    bundled = manifest.get("bundleDependencies") or manifest.get("bundledDependencies") or {}
    if isinstance(bundled, list):
        # The list form names packages that also appear in dependencies.
        bundled = {name: all_dependencies.get(name, "*") for name in bundled}
    all_dependencies.update(bundled)
    optional_dependencies = manifest.get("optionalDependencies") or {}
    all_dependencies.update(optional_dependencies)
    optionals.update(optional_dependencies)
    if dev:
        all_dependencies.update(manifest.get("devDependencies") or {})

    return all_dependencies, optionals


def _label(name: str, version: str) -> str:
    return f"{name}-v{version}" if version else name


async def _run_concurrently(coroutines: Iterable[Coroutine]) -> None:
    """Run *coroutines* as sibling tasks.

    The first failure cancels the siblings still in flight and is raised as
    is, not wrapped in an ExceptionGroup.
    """
    try:
        async with asyncio.TaskGroup() as group:
            for coroutine in coroutines:
                group.create_task(coroutine)
    except ExceptionGroup as error:
        raise error.exceptions[0] from None


async def _infer_module_types(
    context: ResolutionContext,
    location: str,
    external_aliases: Mapping[str, str],
    types: dict[str, str],
) -> None:
    """Mark exported modules whose nearest manifest declares ``type: module``."""

    async def _mark(target: str) -> None:
        found = await search_descriptor(
            resolve_location(target, location), context.reader.read
        )
        if found is not None and found[1].get("type") == "module":
            types[target] = "mjs"

    await _run_concurrently(_mark(target) for target in sorted(set(external_aliases.values())))


async def build_node(
    context: ResolutionContext,
    name: str,
    location: str,
    manifest: dict,
    dev: bool = False,
    logical_path: list[str] | None = None,
) -> None:
    """Add the package at *location* and its transitive dependencies to the graph."""
    if location in context.graph:
        # Already visited, or being visited further up a dependency cycle.
        return
    logical_path = logical_path or []

    if manifest.get("name") != name:
        logger.warning(
            "Package named %r does not match location %s got (%r)",
            name,
            location,
            manifest.get("name"),
        )

    version = manifest.get("version") or ""
    node = PackageNode(
        name=name,
        logical_path=logical_path,
        label=_label(name, version),
        version=version,
    )
    context.graph[location] = node

    node.explicit_exports = manifest.get("exports") is not None
    infer_exports_and_aliases(
        manifest,
        node.external_aliases,
        node.internal_aliases,
        context.conditions,
        node.types,
    )
    node.parsers = infer_parsers(manifest, location, context.language_options)

    all_dependencies, optionals = _collect_dependencies(
        manifest, context.common_dependencies, dev
    )
    await _run_concurrently(
        [
            _infer_module_types(context, location, node.external_aliases, node.types),
            *(
                gather_dependency(
                    context,
                    node.dependency_locations,
                    location,
                    dependency_name,
                    [*logical_path, dependency_name],
                    optional=dependency_name in optionals,
                )
                for dependency_name in sorted(all_dependencies)
            ),
        ]
    )

    for dependency_name, common in context.common_dependencies.items():
        target_location = node.dependency_locations.get(dependency_name)
        if target_location is None:
            raise CommonDependencyMissingError(dependency_name, location)
        node.dependency_locations[common.alias] = target_location

    for specifier in sorted(node.internal_aliases):
        target = node.internal_aliases[specifier]
        # Relative aliases are resolved structurally by the translator.
        if is_relative(specifier) or is_relative(target):
            continue
        target_location = node.dependency_locations.get(target)
        if target_location is None:
            raise AliasTargetMissingError(specifier, target, location)
        node.dependency_locations[specifier] = target_location


async def gather_dependency(
    context: ResolutionContext,
    dependency_locations: dict[str, str],
    package_location: str,
    name: str,
    logical_path: list[str],
    optional: bool = False,
) -> None:
    """Find dependency *name* of the package at *package_location* and graph it."""
    dependency = await find_package(
        context.reader.read, context.canonical, package_location, name
    )
    if dependency is None:
        if optional or not context.strict:
            logger.debug(
                "Skipping missing %sdependency %s of %s",
                "optional " if optional else "",
                name,
                package_location,
            )
            return
        raise DependencyUnresolvedError(name, package_location)

    dependency_locations[name] = dependency.location
    context.edges.setdefault(package_location, {})[name] = dependency.location

    await build_node(
        context,
        name,
        dependency.location,
        dependency.manifest,
        dev=False,
        logical_path=logical_path,
    )


def settle_logical_paths(
    edges: Mapping[str, Mapping[str, str]], entry_location: str
) -> dict[str, list[str]]:
    """Return the least logical path from the entry to every reachable package.

    Appending the same name to two paths preserves their order under
    :func:`~compartmap.compartment_map.path_compare`, so relaxing edges until
    nothing improves finds the least path regardless of visiting order.
    """
    best: dict[str, list[str]] = {entry_location: []}
    pending = deque([entry_location])
    while pending:
        location = pending.popleft()
        dependencies = edges.get(location, {})
        for name in sorted(dependencies):
            target = dependencies[name]
            candidate = [*best[location], name]
            if path_compare(candidate, best.get(target)) < 0:
                best[target] = candidate
                pending.append(target)
    return best


def make_conditions(conditions: Iterable[str] | None) -> set[str]:
    """Return the caller's conditions plus the ones that are always in effect."""
    result = set(conditions or ())
    result.update(DEFAULT_CONDITIONS)
    return result


def resolve_common_dependencies(
    manifest: dict, package_location: str, common_dependencies: Mapping[str, str]
) -> dict[str, CommonDependency]:
    """Map ``{alias: dependency_name}`` onto the entry package's declared specs."""
    declared = manifest.get("dependencies") or {}
    result: dict[str, CommonDependency] = {}
    for alias, dependency_name in common_dependencies.items():
        spec = declared.get(dependency_name)
        if spec is None:
            raise CommonDependencyMissingError(dependency_name, package_location)
        result[dependency_name] = CommonDependency(spec=spec, alias=alias)
    return result


async def graph_packages(
    maybe_read,
    canonical: CanonicalFn,
    package_location: str,
    conditions: Iterable[str] | None,
    manifest: dict | None,
    dev: bool,
    common_dependencies: Mapping[str, str],
    language_options: LanguageOptions,
    strict: bool,
) -> ResolutionContext:
    """Build the full package graph rooted at *package_location*.

    Returns the resolution context, whose ``graph`` and
    ``preferred_logical_paths`` hold the results.
    """
    reader = ManifestReader(maybe_read)
    if manifest is not None:
        reader.seed(package_location, manifest)

    entry_manifest = await reader.read(package_location)
    if entry_manifest is None:
        raise ManifestNotFoundError(
            f"Cannot find package.json for application at {package_location}"
        )

    context = ResolutionContext(
        reader=reader,
        canonical=canonical,
        conditions=make_conditions(conditions),
        language_options=language_options,
        common_dependencies=resolve_common_dependencies(
            entry_manifest, package_location, common_dependencies
        ),
        strict=strict,
    )

    await build_node(
        context,
        entry_manifest.get("name", ""),
        package_location,
        entry_manifest,
        dev=dev,
    )

    # Logical paths recorded during the walk depend on which sibling read its
    # manifest first. The settled ones do not.
    context.preferred_logical_paths = settle_logical_paths(context.edges, package_location)
    for location, node in context.graph.items():
        preferred = context.preferred_logical_paths.get(location)
        if location != package_location and preferred:
            node.logical_path = preferred
            node.name = preferred[-1]
            node.label = _label(node.name, node.version)

    logger.debug(
        "Graphed %d packages from %d manifest reads",
        len(context.graph),
        len(reader),
    )
    return context
