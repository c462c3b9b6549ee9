"""Resolution options and where to read them from."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from compartmap.languages import LanguageOptions, make_language_options
from compartmap.policy import load_policy

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".compartmap.toml"


@dataclass
class MapOptions:
    """Options for one compartment map resolution."""

    conditions: set[str] = field(default_factory=set)
    dev: bool = False
    strict: bool = False
    # alias -> name of a dependency of the entry package
    common_dependencies: dict[str, str] = field(default_factory=dict)
    policy: dict | None = None
    language_for_extension: dict[str, str] = field(default_factory=dict)
    module_language_for_extension: dict[str, str] = field(default_factory=dict)
    commonjs_language_for_extension: dict[str, str] = field(default_factory=dict)
    workspace_language_for_extension: dict[str, str] = field(default_factory=dict)
    workspace_module_language_for_extension: dict[str, str] = field(default_factory=dict)
    workspace_commonjs_language_for_extension: dict[str, str] = field(default_factory=dict)
    languages: list[str] = field(default_factory=list)

    def language_options(self) -> LanguageOptions:
        return make_language_options(
            language_for_extension=self.language_for_extension,
            module_language_for_extension=self.module_language_for_extension,
            commonjs_language_for_extension=self.commonjs_language_for_extension,
            workspace_language_for_extension=self.workspace_language_for_extension,
            workspace_module_language_for_extension=self.workspace_module_language_for_extension,
            workspace_commonjs_language_for_extension=self.workspace_commonjs_language_for_extension,
            languages=self.languages,
        )


# config key -> MapOptions attribute
_KEYS = {
    "conditions": "conditions",
    "dev": "dev",
    "strict": "strict",
    "commonDependencies": "common_dependencies",
    "languageForExtension": "language_for_extension",
    "moduleLanguageForExtension": "module_language_for_extension",
    "commonjsLanguageForExtension": "commonjs_language_for_extension",
    "workspaceLanguageForExtension": "workspace_language_for_extension",
    "workspaceModuleLanguageForExtension": "workspace_module_language_for_extension",
    "workspaceCommonjsLanguageForExtension": "workspace_commonjs_language_for_extension",
    "languages": "languages",
}


def options_from_mapping(data: dict, base_dir: Path) -> MapOptions:
    """Build MapOptions from a config table.

    Keys may be camelCase (as in package.json) or snake_case. A ``policy``
    string is a path relative to *base_dir*.
    """
    options = MapOptions()
    for key, value in data.items():
        attr = _KEYS.get(key, key.replace("-", "_"))
        if attr == "policy":
            if isinstance(value, str):
                value = load_policy(base_dir / value)
        elif not hasattr(options, attr):
            logger.warning("Ignoring unknown compartmap option %r", key)
            continue
        if attr == "conditions":
            value = set(value)
        setattr(options, attr, value)
    return options


def _read_config_table(project_dir: Path) -> dict | None:
    """Read the compartmap table from .compartmap.toml or package.json."""
    import tomllib

    # Try .compartmap.toml first
    config_toml = project_dir / CONFIG_FILE_NAME
    if config_toml.exists():
        try:
            with open(config_toml, "rb") as f:
                data = tomllib.load(f)
            return data.get("compartmap", {})
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Could not parse %s: %s", CONFIG_FILE_NAME, e)

    # Fall back to a "compartmap" object in package.json
    package_json = project_dir / "package.json"
    if package_json.exists():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data.get("compartmap")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not parse package.json: %s", e)

    return None


def load_options(project_dir: Path, **overrides) -> MapOptions:
    """Return the options configured for *project_dir*, with *overrides* applied."""
    table = _read_config_table(project_dir)
    if table is not None and not isinstance(table, dict):
        logger.warning("Ignoring compartmap config of type %s", type(table).__name__)
        table = None
    options = options_from_mapping(table or {}, project_dir)
    for attr, value in overrides.items():
        if not hasattr(options, attr):
            raise TypeError(f"Unknown option {attr!r}")
        setattr(options, attr, value)
    return options
