"""Serialize a CompartmentMap to JSON."""

from __future__ import annotations

import json
from pathlib import Path

from compartmap.model import CompartmentDescriptor, CompartmentMap


def _compartment_to_dict(compartment: CompartmentDescriptor) -> dict:
    d: dict = {
        "name": compartment.name,
        "label": compartment.label,
        "path": list(compartment.logical_path),
        "location": compartment.location,
        "modules": {
            k: {"compartment": m.compartment, "module": m.module}
            for k, m in sorted(compartment.modules.items())
        },
        "scopes": {
            k: {"compartment": s.compartment}
            for k, s in sorted(compartment.scopes.items())
        },
        "parsers": dict(sorted(compartment.parsers.items())),
        "types": dict(sorted(compartment.types.items())),
        "compartments": sorted(compartment.compartments),
    }
    if compartment.policy is not None:
        d["policy"] = compartment.policy
    return d


def compartment_map_to_dict(compartment_map: CompartmentMap) -> dict:
    """Return the plain-data form of *compartment_map*, with sorted keys."""
    return {
        "tags": list(compartment_map.tags),
        "entry": {
            "compartment": compartment_map.entry.compartment,
            "module": compartment_map.entry.module,
        },
        "compartments": {
            location: _compartment_to_dict(compartment)
            for location, compartment in sorted(compartment_map.compartments.items())
        },
    }


def compartment_map_to_json(compartment_map: CompartmentMap, indent: int | None = 2) -> str:
    return json.dumps(compartment_map_to_dict(compartment_map), indent=indent)


def write_compartment_map(compartment_map: CompartmentMap, output_path: Path) -> None:
    """Write *compartment_map* as JSON to *output_path*."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(compartment_map_to_json(compartment_map) + "\n")
