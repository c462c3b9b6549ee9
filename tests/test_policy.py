from __future__ import annotations

import pytest

from compartmap.errors import PolicyLoadError
from compartmap.model import PackageIdentity
from compartmap.policy import (
    ATTENUATORS_COMPARTMENT,
    EnforcedGate,
    OpenGate,
    canonical_name,
    dependency_allowed_by_policy,
    detect_attenuators,
    get_policy_for_package,
    load_policy,
    make_policy_gate,
    policy_lookup,
)

ENTRY = PackageIdentity(name="app", logical_path=(), is_entry=True)
NESTED = PackageIdentity(name="c", logical_path=("a", "b", "c"))

POLICY = {
    "entry": {"packages": {"a": True}, "globals": {"console": True}},
    "resources": {
        "a>b>c": {
            "packages": "any",
            "builtins": {"fs": {"attenuate": "fs-attenuator"}},
        },
    },
    "defaultAttenuator": "default-attenuator",
}


def test_canonical_name() -> None:
    assert canonical_name(NESTED) == "a>b>c"
    assert canonical_name(PackageIdentity(name="x", logical_path=("x",))) == "x"
    with pytest.raises(ValueError):
        canonical_name(ENTRY)


def test_policy_lookup() -> None:
    assert policy_lookup({"packages": "any"}, "packages", "whatever")
    assert policy_lookup({"packages": {"a": True}}, "packages", "a")
    assert not policy_lookup({"packages": {"a": True}}, "packages", "b")
    assert not policy_lookup({"packages": {"a": False}}, "packages", "a")
    assert not policy_lookup(None, "packages", "a")
    assert not policy_lookup({}, "packages", "a")


def test_entry_is_never_an_allowed_dependency() -> None:
    assert not dependency_allowed_by_policy(ENTRY, {"packages": "any"})
    assert dependency_allowed_by_policy(NESTED, {"packages": {"a>b>c": True}})


def test_fragment_selection() -> None:
    assert get_policy_for_package(ENTRY, POLICY) == POLICY["entry"]
    assert get_policy_for_package(NESTED, POLICY) == POLICY["resources"]["a>b>c"]
    assert get_policy_for_package(
        PackageIdentity(name="z", logical_path=("z",)), POLICY
    ) == {"packages": {}, "globals": {}, "builtins": {}}
    assert get_policy_for_package(NESTED, None) is None


def test_attenuators_fragment() -> None:
    identity = PackageIdentity(name=ATTENUATORS_COMPARTMENT, logical_path=())

    assert get_policy_for_package(identity, POLICY) == {
        "defaultAttenuator": "default-attenuator",
        "packages": "any",
    }


def test_detect_attenuators() -> None:
    assert detect_attenuators(POLICY) == ["default-attenuator", "fs-attenuator"]
    assert detect_attenuators({}) == []


def test_gates() -> None:
    assert isinstance(make_policy_gate(None), OpenGate)
    gate = make_policy_gate(POLICY)
    assert isinstance(gate, EnforcedGate)

    assert OpenGate().resolve_fragment(NESTED) is None
    assert OpenGate().is_dependency_allowed(NESTED, None)
    assert gate.resolve_fragment(ENTRY) == POLICY["entry"]
    assert not gate.is_dependency_allowed(NESTED, POLICY["entry"])


def test_empty_entry_fragment_is_accepted() -> None:
    gate = EnforcedGate({"entry": {}})

    assert gate.resolve_fragment(ENTRY) == {}


def test_load_policy_yaml(tmp_path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text(
        "entry:\n"
        "  packages: any\n"
        "resources:\n"
        '  "a>b":\n'
        "    globals: {fetch: true}\n"
    )

    policy = load_policy(path)

    assert policy["entry"] == {"packages": "any"}
    assert policy["resources"]["a>b"]["globals"] == {"fetch": True}


def test_load_policy_json(tmp_path) -> None:
    path = tmp_path / "policy.json"
    path.write_text('{"entry": {"packages": {"a": true}}}')

    assert load_policy(path) == {"entry": {"packages": {"a": True}}}


def test_load_policy_errors(tmp_path) -> None:
    with pytest.raises(PolicyLoadError):
        load_policy(tmp_path / "missing.yaml")

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n")
    with pytest.raises(PolicyLoadError):
        load_policy(scalar)

    broken = tmp_path / "broken.yaml"
    broken.write_text("entry: [unclosed\n")
    with pytest.raises(PolicyLoadError):
        load_policy(broken)
