"""compartmap: resolve node_modules into deterministic compartment maps."""

from compartmap.config import MapOptions, load_options
from compartmap.errors import CompartmapError
from compartmap.model import CompartmentDescriptor, CompartmentMap, PackageNode
from compartmap.pipeline import (
    compartment_map_for_node_modules,
    map_node_modules,
    map_node_modules_sync,
)
from compartmap.powers import FileReadPowers, ReadPowers
from compartmap.serialize import compartment_map_to_dict, compartment_map_to_json

__all__ = [
    "CompartmapError",
    "CompartmentDescriptor",
    "CompartmentMap",
    "FileReadPowers",
    "MapOptions",
    "PackageNode",
    "ReadPowers",
    "compartment_map_for_node_modules",
    "compartment_map_to_dict",
    "compartment_map_to_json",
    "load_options",
    "map_node_modules",
    "map_node_modules_sync",
]
