"""Orchestrator: search → graph → translate."""

from __future__ import annotations

import asyncio
import logging

from compartmap.analysis import find_cycles
from compartmap.config import MapOptions
from compartmap.graph import graph_packages
from compartmap.manifest import parse_manifest, search
from compartmap.model import CompartmentMap
from compartmap.policy import detect_attenuators, make_policy_gate
from compartmap.powers import ReadPowers, unpack_read_powers
from compartmap.translate import add_attenuators_compartment, translate_graph

logger = logging.getLogger(__name__)


async def compartment_map_for_node_modules(
    read_powers: ReadPowers | None,
    package_location: str,
    conditions,
    manifest: dict | None,
    module_specifier: str,
    options: MapOptions | None = None,
) -> CompartmentMap:
    """Build the compartment map for the package at *package_location*.

    *manifest* is the already parsed entry package.json, if the caller has it.
    """
    options = options or MapOptions()
    powers = unpack_read_powers(read_powers)
    package_location = await powers.canonical(package_location)
    conditions = set(conditions or ()) | set(options.conditions)

    # dev applies to the entry package only and is implied by the
    # "development" condition.
    dev = options.dev or "development" in conditions

    context = await graph_packages(
        powers.maybe_read,
        powers.canonical,
        package_location,
        conditions,
        manifest,
        dev,
        options.common_dependencies,
        options.language_options(),
        options.strict,
    )
    graph = context.graph

    cycles = find_cycles(graph)
    logger.debug("Dependency cycles detected: %d", len(cycles))
    for cycle in cycles:
        logger.debug("Cycle: %s", " -> ".join(graph[location].label for location in cycle))

    if options.policy is not None:
        add_attenuators_compartment(graph, package_location)
        logger.debug(
            "Policy declares attenuators: %s", detect_attenuators(options.policy)
        )

    return translate_graph(
        package_location,
        module_specifier,
        graph,
        context.conditions,
        make_policy_gate(options.policy),
    )


async def map_node_modules(
    read_powers: ReadPowers | None,
    module_location: str,
    options: MapOptions | None = None,
) -> CompartmentMap:
    """Build the compartment map for the package containing *module_location*."""
    found = await search(read_powers, module_location)
    manifest = parse_manifest(found.manifest_text, found.manifest_location)
    logger.debug(
        "Entry module %s in package %s", found.module_specifier, found.package_location
    )
    return await compartment_map_for_node_modules(
        read_powers,
        found.package_location,
        None,
        manifest,
        found.module_specifier,
        options,
    )


def map_node_modules_sync(
    module_location: str,
    options: MapOptions | None = None,
    read_powers: ReadPowers | None = None,
) -> CompartmentMap:
    """Run :func:`map_node_modules` to completion on a fresh event loop."""
    return asyncio.run(map_node_modules(read_powers, module_location, options))
