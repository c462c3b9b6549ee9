"""Data model for package graphs and compartment maps."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PackageNode:
    """A package discovered while walking ``node_modules``.

    Nodes are keyed by canonical location in the graph, never by name.
    """

    name: str = ""
    logical_path: list[str] = field(default_factory=list)
    label: str = ""
    version: str = ""
    explicit_exports: bool = False
    # subpath ("." or "./x") -> module path within the package
    external_aliases: dict[str, str] = field(default_factory=dict)
    # self-referencing specifier -> module path or dependency specifier
    internal_aliases: dict[str, str] = field(default_factory=dict)
    # dependency name -> location
    dependency_locations: dict[str, str] = field(default_factory=dict)
    parsers: dict[str, str] = field(default_factory=dict)  # extension -> language
    types: dict[str, str] = field(default_factory=dict)  # module path -> language


Graph = dict[str, PackageNode]


@dataclass
class FoundPackage:
    """A package located by the ascending ``node_modules`` search."""

    location: str
    manifest: dict


@dataclass(frozen=True)
class PackageIdentity:
    """What the policy layer knows about a package."""

    name: str
    logical_path: tuple[str, ...]
    is_entry: bool = False


@dataclass
class ModuleDescriptor:
    """A module importable from another (or the same) compartment."""

    compartment: str
    module: str


@dataclass
class ScopeDescriptor:
    """Any module under a dependency that declares no explicit exports."""

    compartment: str


@dataclass
class EntryDescriptor:
    compartment: str
    module: str


@dataclass
class CompartmentDescriptor:
    """One compartment of the map, corresponding to one package location."""

    name: str
    label: str
    logical_path: list[str]
    location: str
    modules: dict[str, ModuleDescriptor] = field(default_factory=dict)
    scopes: dict[str, ScopeDescriptor] = field(default_factory=dict)
    parsers: dict[str, str] = field(default_factory=dict)
    types: dict[str, str] = field(default_factory=dict)
    policy: dict | None = None
    compartments: set[str] = field(default_factory=set)


@dataclass
class CompartmentMap:
    """The complete hand-off structure for the linking stage."""

    tags: list[str]
    entry: EntryDescriptor
    compartments: dict[str, CompartmentDescriptor] = field(default_factory=dict)
