from __future__ import annotations

import json

from compartmap.compartment_map import assert_compartment_map
from compartmap.model import (
    CompartmentDescriptor,
    CompartmentMap,
    EntryDescriptor,
    ModuleDescriptor,
    ScopeDescriptor,
)
from compartmap.serialize import (
    compartment_map_to_dict,
    compartment_map_to_json,
    write_compartment_map,
)

APP = "file:///app/"
A = "file:///app/node_modules/a/"


def _map(policy=None) -> CompartmentMap:
    return CompartmentMap(
        tags=["default", "import"],
        entry=EntryDescriptor(compartment=APP, module="./main.js"),
        compartments={
            A: CompartmentDescriptor(
                name="a", label="a", logical_path=["a"], location=A, policy=policy
            ),
            APP: CompartmentDescriptor(
                name="app",
                label="app",
                logical_path=[],
                location=APP,
                modules={
                    "a": ModuleDescriptor(compartment=A, module="./index.js"),
                    "app": ModuleDescriptor(compartment=APP, module="./main.js"),
                },
                scopes={"a": ScopeDescriptor(compartment=A)},
                parsers={"json": "json", "js": "cjs"},
                compartments={A},
                policy=policy,
            ),
        },
    )


def test_dict_form() -> None:
    data = compartment_map_to_dict(_map())

    assert list(data["compartments"]) == [APP, A]
    app = data["compartments"][APP]
    assert app["path"] == []
    assert app["modules"]["a"] == {"compartment": A, "module": "./index.js"}
    assert app["scopes"] == {"a": {"compartment": A}}
    assert list(app["parsers"]) == ["js", "json"]
    assert app["compartments"] == [A]
    assert "policy" not in app
    assert_compartment_map(data)


def test_policy_is_serialized_when_present() -> None:
    data = compartment_map_to_dict(_map(policy={"packages": "any"}))

    assert data["compartments"][A]["policy"] == {"packages": "any"}


def test_json_is_stable() -> None:
    assert compartment_map_to_json(_map()) == compartment_map_to_json(_map())
    assert json.loads(compartment_map_to_json(_map(), indent=None))["tags"] == [
        "default",
        "import",
    ]


def test_write_compartment_map(tmp_path) -> None:
    output = tmp_path / "out" / "compartment-map.json"

    write_compartment_map(_map(), output)

    assert json.loads(output.read_text())["entry"] == {
        "compartment": APP,
        "module": "./main.js",
    }
