"""Exception types raised while resolving a compartment map.

Every fatal condition aborts the whole resolution. Conditions that are merely
unusual (no manifest at a probed location, a missing optional dependency, a
manifest whose name disagrees with its location) are logged, never raised.
"""

from __future__ import annotations


class CompartmapError(Exception):
    """Base class for compartment map resolution failures."""


class ManifestNotFoundError(CompartmapError):
    """The entry package (or the package enclosing an entry module) has no manifest."""


class ManifestParseError(CompartmapError):
    """A package.json could not be parsed as a JSON object."""

    def __init__(self, location: str, reason: str):
        super().__init__(f"Cannot parse package.json at {location}: {reason}")
        self.location = location


class DependencyUnresolvedError(CompartmapError):
    """A required dependency could not be found in strict mode."""

    def __init__(self, name: str, requester: str):
        super().__init__(f"Cannot find dependency {name} for {requester}")
        self.name = name
        self.requester = requester


class CommonDependencyMissingError(CompartmapError):
    """An administrator-declared common dependency was never resolved."""

    def __init__(self, name: str, requester: str):
        super().__init__(f"Cannot find common dependency {name} for {requester}")
        self.name = name
        self.requester = requester


class AliasTargetMissingError(CompartmapError):
    """An internal alias names a dependency that was never resolved."""

    def __init__(self, specifier: str, target: str, requester: str):
        super().__init__(
            f"Cannot find dependency {target} for {requester} "
            f"(aliased as {specifier})"
        )
        self.specifier = specifier
        self.target = target
        self.requester = requester


class MalformedParserMapError(CompartmapError):
    """A package's ``parsers`` field is not an extension-to-language mapping."""


class UnknownLanguageError(CompartmapError):
    """A package's ``parsers`` field names a language nobody can parse."""


class UnknownPackageTypeError(CompartmapError):
    """A package declares a ``type`` other than ``module`` or ``commonjs``."""


class InvalidExportsError(CompartmapError):
    """A package's ``exports``, ``imports`` or ``browser`` field has the wrong shape."""


class PolicyFragmentMissingError(CompartmapError):
    """A policy is active but a package resolved to no policy fragment."""


class ReservedNameCollisionError(CompartmapError):
    """A real package claims the reserved attenuators compartment name."""


class PolicyLoadError(CompartmapError):
    """A policy document could not be read."""


class InvalidCompartmentMapError(CompartmapError):
    """A compartment map failed structural validation."""
