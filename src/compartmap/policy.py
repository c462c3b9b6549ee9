"""Apply an access policy to packages and their dependencies.

A policy document looks like::

    entry:
      packages: any
      globals: {console: true}
    resources:
      "a>b":
        packages: {"a>b>c": true}
        builtins: {fs: {attenuate: "my-fs-attenuator"}}
    defaultAttenuator: "my-attenuator"

Resources are keyed by canonical name: the logical path of a package joined
with ``>``. Only application is implemented here, not schema validation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import yaml

from compartmap.errors import PolicyFragmentMissingError, PolicyLoadError
from compartmap.model import PackageIdentity

logger = logging.getLogger(__name__)

ATTENUATORS_COMPARTMENT = "<ATTENUATORS>"
WILDCARD_POLICY_VALUE = "any"

_POLICY_FIELDS = ("packages", "globals", "builtins")


def canonical_name(identity: PackageIdentity) -> str:
    """Return the policy key for a non-entry package."""
    if identity.is_entry:
        raise ValueError("The entry package cannot be identified by a canonical name")
    if identity.name == ATTENUATORS_COMPARTMENT:
        return ATTENUATORS_COMPARTMENT
    return ">".join(identity.logical_path)


def policy_lookup(fragment: dict | None, field: str, item: str) -> bool:
    """Return True if *fragment* grants *item* in *field*."""
    if not fragment:
        return False
    value = fragment.get(field)
    if value == WILDCARD_POLICY_VALUE:
        return True
    if isinstance(value, dict):
        return bool(value.get(item))
    return False


def dependency_allowed_by_policy(identity: PackageIdentity, fragment: dict | None) -> bool:
    """Return True if a package holding *fragment* may import *identity*."""
    if identity.is_entry:
        # The entry package is never importable as a dependency.
        return False
    return policy_lookup(fragment, "packages", canonical_name(identity))


def get_policy_for_package(identity: PackageIdentity, policy: dict | None) -> dict | None:
    """Return the policy fragment that governs *identity*."""
    if policy is None:
        return None
    if identity.is_entry:
        return policy.get("entry")
    name = canonical_name(identity)
    if name == ATTENUATORS_COMPARTMENT:
        return {
            "defaultAttenuator": policy.get("defaultAttenuator"),
            "packages": WILDCARD_POLICY_VALUE,
        }
    resources = policy.get("resources") or {}
    if name in resources:
        return resources[name]
    # Packages with no powers need not be listed.
    return {field: {} for field in _POLICY_FIELDS}


def detect_attenuators(policy: dict) -> list[str]:
    """Return every attenuator module specifier the policy refers to."""
    attenuators: set[str] = set()
    default = policy.get("defaultAttenuator")
    if isinstance(default, str):
        attenuators.add(default)
    fragments = [policy.get("entry") or {}]
    fragments.extend((policy.get("resources") or {}).values())
    for fragment in fragments:
        if not isinstance(fragment, dict):
            continue
        for field in _POLICY_FIELDS:
            value = fragment.get(field)
            if not isinstance(value, dict):
                continue
            for item in value.values():
                if isinstance(item, dict) and isinstance(item.get("attenuate"), str):
                    attenuators.add(item["attenuate"])
    return sorted(attenuators)


class PolicyGate(Protocol):
    """Protocol for the translator's policy enforcement point."""

    def resolve_fragment(self, identity: PackageIdentity) -> dict | None:
        ...

    def is_dependency_allowed(
        self, dependency: PackageIdentity, fragment: dict | None
    ) -> bool:
        ...


class OpenGate:
    """No policy: every dependency is visible."""

    def resolve_fragment(self, identity: PackageIdentity) -> dict | None:
        return None

    def is_dependency_allowed(
        self, dependency: PackageIdentity, fragment: dict | None
    ) -> bool:
        return True


class EnforcedGate:
    """Delegates visibility decisions to a policy document."""

    def __init__(self, policy: dict):
        self.policy = policy

    def resolve_fragment(self, identity: PackageIdentity) -> dict | None:
        fragment = get_policy_for_package(identity, self.policy)
        if fragment is None:
            raise PolicyFragmentMissingError(
                f"No policy fragment for package {identity.name!r} "
                f"at logical path {list(identity.logical_path)!r}"
            )
        return fragment

    def is_dependency_allowed(
        self, dependency: PackageIdentity, fragment: dict | None
    ) -> bool:
        return dependency_allowed_by_policy(dependency, fragment)


def make_policy_gate(policy: dict | None) -> PolicyGate:
    if policy is None:
        return OpenGate()
    return EnforcedGate(policy)


def load_policy(path: Path) -> dict:
    """Read a policy document from a YAML or JSON file."""
    try:
        with open(path) as f:
            policy = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise PolicyLoadError(f"Could not read policy {path}: {e}") from e
    if not isinstance(policy, dict):
        raise PolicyLoadError(
            f"Policy {path} must be a mapping, got {type(policy).__name__}"
        )
    logger.debug("Loaded policy from %s (%d resources)", path, len(policy.get("resources") or {}))
    return policy
