"""Translate a package graph into a compartment map."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from compartmap.errors import ReservedNameCollisionError
from compartmap.locations import is_relative, join_specifier
from compartmap.model import (
    CompartmentDescriptor,
    CompartmentMap,
    EntryDescriptor,
    Graph,
    ModuleDescriptor,
    PackageIdentity,
    PackageNode,
    ScopeDescriptor,
)
from compartmap.policy import ATTENUATORS_COMPARTMENT, OpenGate, PolicyGate

logger = logging.getLogger(__name__)


def add_attenuators_compartment(graph: Graph, entry_location: str) -> None:
    """Register the reserved, policy-exempt compartment that hosts attenuators.

    It has the shape of the entry package but exports nothing.
    """
    for location, node in graph.items():
        if ATTENUATORS_COMPARTMENT in (location, node.name):
            raise ReservedNameCollisionError(
                f"{ATTENUATORS_COMPARTMENT!r} is a reserved compartment name, "
                f"claimed by the package at {location}"
            )
    entry = graph[entry_location]
    graph[ATTENUATORS_COMPARTMENT] = PackageNode(
        name=ATTENUATORS_COMPARTMENT,
        logical_path=list(entry.logical_path),
        label=ATTENUATORS_COMPARTMENT,
        version=entry.version,
        explicit_exports=entry.explicit_exports,
        external_aliases={},
        internal_aliases=dict(entry.internal_aliases),
        dependency_locations=dict(entry.dependency_locations),
        parsers=dict(entry.parsers),
        types=dict(entry.types),
    )


def translate_graph(
    entry_location: str,
    entry_module_specifier: str,
    graph: Graph,
    conditions: Iterable[str],
    gate: PolicyGate | None = None,
) -> CompartmentMap:
    """Build a compartment descriptor for every package in *graph*.

    Each compartment's module table lists every module it can import from
    every package it depends on, keyed by the full specifier as seen from the
    importing package.
    """
    gate = gate or OpenGate()
    compartments: dict[str, CompartmentDescriptor] = {}

    for location in sorted(graph):
        node = graph[location]
        modules: dict[str, ModuleDescriptor] = {}
        scopes: dict[str, ScopeDescriptor] = {}
        compartment_names: set[str] = set()

        package_policy = gate.resolve_fragment(
            PackageIdentity(
                name=node.name,
                logical_path=tuple(node.logical_path),
                is_entry=location == entry_location,
            )
        )

        def digest_external_aliases(dependency_name: str, dependency_location: str) -> None:
            dependency = graph[dependency_location]
            allowed = gate.is_dependency_allowed(
                PackageIdentity(
                    name=dependency.name,
                    logical_path=tuple(dependency.logical_path),
                ),
                package_policy,
            )
            if allowed:
                for export_path in sorted(dependency.external_aliases):
                    # The dependency name may differ from the package's own
                    # name, as with aliased installs.
                    modules[join_specifier(dependency_name, export_path)] = ModuleDescriptor(
                        compartment=dependency_location,
                        module=dependency.external_aliases[export_path],
                    )
            # Without an exports field every module of the package is reachable.
            # Policy restricts the module table only, never the scope.
            if not dependency.explicit_exports:
                scopes[dependency_name] = ScopeDescriptor(compartment=dependency_location)

        # The package can import itself by name.
        digest_external_aliases(node.name, location)
        for dependency_name in sorted(node.dependency_locations):
            dependency_location = node.dependency_locations[dependency_name]
            digest_external_aliases(dependency_name, dependency_location)
            compartment_names.add(dependency_location)

        for specifier in sorted(node.internal_aliases):
            target = node.internal_aliases[specifier]
            if is_relative(target):
                modules[specifier] = ModuleDescriptor(compartment=location, module=target)

        compartments[location] = CompartmentDescriptor(
            name=node.name,
            label=node.label,
            logical_path=list(node.logical_path),
            location=location,
            modules=modules,
            scopes=scopes,
            parsers=dict(node.parsers),
            types=dict(node.types),
            policy=package_policy,
            compartments=compartment_names,
        )

    logger.debug("Translated %d compartments", len(compartments))
    return CompartmentMap(
        tags=sorted(conditions),
        entry=EntryDescriptor(compartment=entry_location, module=entry_module_specifier),
        compartments=compartments,
    )
