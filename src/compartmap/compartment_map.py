"""Comparison, validation and naming helpers for compartment maps."""

from __future__ import annotations

import json
from collections.abc import Sequence
from functools import cmp_to_key

from compartmap.errors import InvalidCompartmentMapError
from compartmap.model import CompartmentDescriptor


def string_compare(a: str, b: str) -> int:
    if a == b:
        return 0
    return -1 if a < b else 1


def path_compare(a: Sequence[str] | None, b: Sequence[str] | None) -> int:
    """Order logical paths by preference.

    A missing path sorts last. Otherwise the path with fewer names wins, then
    the one with the smaller total name length, then the lexically smaller.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    if len(a) != len(b):
        return -1 if len(a) < len(b) else 1
    a_sum = sum(len(name) for name in a)
    b_sum = sum(len(name) for name in b)
    if a_sum != b_sum:
        return -1 if a_sum < b_sum else 1
    for a_name, b_name in zip(a, b):
        comparison = string_compare(a_name, b_name)
        if comparison != 0:
            return comparison
    return 0


def _fail(message: str) -> None:
    raise InvalidCompartmentMapError(message)


def _assert_string(value, message: str) -> None:
    if not isinstance(value, str):
        _fail(message)


def _assert_mapping(value, message: str) -> dict:
    if not isinstance(value, dict):
        _fail(message)
    return value


def assert_compartment_map(data, url: str = "<unknown-compartment-map.json>") -> None:
    """Validate the serialized form of a compartment map.

    Checks that every tag is a string, that the entry names a compartment in
    the map, and that every module and scope descriptor names a compartment
    in the map.
    """
    q = json.dumps
    compartment_map = _assert_mapping(
        data, f"Compartment map must be an object, got {data!r} in {q(url)}"
    )
    extra = set(compartment_map) - {"tags", "entry", "compartments"}
    if extra:
        _fail(
            f"Compartment map must not have extra properties, "
            f"got {q(sorted(extra))} in {q(url)}"
        )

    tags = compartment_map.get("tags")
    if tags is not None:
        if not isinstance(tags, list):
            _fail(f"tags must be an array, got {tags!r} in {q(url)}")
        for index, tag in enumerate(tags):
            _assert_string(tag, f"tags[{index}] must be a string, got {tag!r} in {q(url)}")

    compartments = _assert_mapping(
        compartment_map.get("compartments"),
        f"compartments must be an object in {q(url)}",
    )

    entry = _assert_mapping(
        compartment_map.get("entry"),
        f'"entry" must be an object in compartment map in {q(url)}',
    )
    _assert_string(
        entry.get("compartment"),
        f"entry.compartment must be a string in compartment map in {q(url)}",
    )
    _assert_string(
        entry.get("module"),
        f"entry.module must be a string in compartment map in {q(url)}",
    )
    if entry["compartment"] not in compartments:
        _fail(
            f"entry.compartment {q(entry['compartment'])} is not a compartment "
            f"in {q(url)}"
        )

    for key, compartment in compartments.items():
        path = f"compartments[{q(key)}]"
        _assert_mapping(compartment, f"{path} must be an object in {q(url)}")
        for field_name in ("location", "name", "label"):
            _assert_string(
                compartment.get(field_name),
                f"{path}.{field_name} in {q(url)} must be string, "
                f"got {q(compartment.get(field_name))}",
            )
        modules = _assert_mapping(
            compartment.get("modules", {}), f"{path}.modules must be an object"
        )
        for specifier, module in modules.items():
            module_path = f"{path}.modules[{q(specifier)}]"
            _assert_mapping(module, f"{module_path} must be an object in {q(url)}")
            _assert_string(
                module.get("compartment"),
                f"{module_path}.compartment must be a string in {q(url)}",
            )
            _assert_string(
                module.get("module"), f"{module_path}.module must be a string in {q(url)}"
            )
            if module["compartment"] not in compartments:
                _fail(
                    f"{module_path}.compartment {q(module['compartment'])} "
                    f"is not a compartment in {q(url)}"
                )
        scopes = _assert_mapping(
            compartment.get("scopes", {}), f"{path}.scopes must be an object"
        )
        for scope_name, scope in scopes.items():
            scope_path = f"{path}.scopes[{q(scope_name)}]"
            _assert_mapping(scope, f"{scope_path} must be an object in {q(url)}")
            _assert_string(
                scope.get("compartment"),
                f"{scope_path}.compartment must be a string in {q(url)}",
            )
            if scope["compartment"] not in compartments:
                _fail(
                    f"{scope_path}.compartment {q(scope['compartment'])} "
                    f"is not a compartment in {q(url)}"
                )
        for table in ("parsers", "types"):
            values = _assert_mapping(
                compartment.get(table, {}), f"{path}.{table} must be an object"
            )
            for key_name, language in values.items():
                _assert_string(
                    language,
                    f"{path}.{table}[{q(key_name)}] must be a string, "
                    f"got {language!r} in {q(url)}",
                )


def rename_compartments(
    compartments: dict[str, CompartmentDescriptor],
) -> dict[str, str]:
    """Return a map from compartment location to a layout-independent name.

    Compartments are sorted on their self-ascribed label, using the
    preferred logical path as the tie-breaker. Duplicate labels get a
    ``-nN`` suffix in that order.
    """

    def _compare(a: tuple[str, CompartmentDescriptor], b: tuple[str, CompartmentDescriptor]) -> int:
        if a[1].label == b[1].label:
            return path_compare(a[1].logical_path, b[1].logical_path)
        return string_compare(a[1].label, b[1].label)

    renames: dict[str, str] = {}
    prev = ""
    index = 0
    for location, compartment in sorted(compartments.items(), key=cmp_to_key(_compare)):
        label = compartment.label
        if label == prev:
            renames[location] = f"{label}-n{index}"
            index += 1
        else:
            renames[location] = label
            prev = label
            index = 1
    return renames
