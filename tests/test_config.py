from __future__ import annotations

import json
import logging

import pytest

from compartmap.config import CONFIG_FILE_NAME, MapOptions, load_options, options_from_mapping


def test_defaults(tmp_path) -> None:
    options = load_options(tmp_path)

    assert options == MapOptions()
    assert options.policy is None
    assert options.language_options().language_for_extension["json"] == "json"


def test_toml_config(tmp_path) -> None:
    (tmp_path / "policy.yaml").write_text("entry:\n  packages: any\n")
    (tmp_path / CONFIG_FILE_NAME).write_text(
        "[compartmap]\n"
        'conditions = ["browser"]\n'
        "strict = true\n"
        'policy = "policy.yaml"\n'
        "\n"
        "[compartmap.commonDependencies]\n"
        'shim = "real-shim"\n'
    )

    options = load_options(tmp_path)

    assert options.conditions == {"browser"}
    assert options.strict is True
    assert options.common_dependencies == {"shim": "real-shim"}
    assert options.policy == {"entry": {"packages": "any"}}


def test_package_json_fallback(tmp_path) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps(
            {
                "name": "app",
                "compartmap": {
                    "dev": True,
                    "workspaceLanguageForExtension": {"ts": "mts"},
                    "languages": ["mts"],
                },
            }
        )
    )

    options = load_options(tmp_path)

    assert options.dev is True
    assert options.workspace_language_for_extension == {"ts": "mts"}
    assert "mts" in options.language_options().languages


def test_toml_takes_precedence(tmp_path) -> None:
    (tmp_path / CONFIG_FILE_NAME).write_text("[compartmap]\nstrict = true\n")
    (tmp_path / "package.json").write_text(
        json.dumps({"compartmap": {"strict": False, "dev": True}})
    )

    options = load_options(tmp_path)

    assert options.strict is True
    assert options.dev is False


def test_overrides(tmp_path) -> None:
    (tmp_path / CONFIG_FILE_NAME).write_text("[compartmap]\nstrict = true\n")

    options = load_options(tmp_path, strict=False, conditions={"node"})

    assert options.strict is False
    assert options.conditions == {"node"}
    with pytest.raises(TypeError):
        load_options(tmp_path, bogus=True)


def test_unknown_keys_are_ignored_with_warning(tmp_path, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="compartmap.config"):
        options = options_from_mapping({"mystery": 1, "dev": True}, tmp_path)

    assert options.dev is True
    assert "mystery" in caplog.text


def test_broken_toml_falls_back_with_warning(tmp_path, caplog) -> None:
    (tmp_path / CONFIG_FILE_NAME).write_text("[compartmap\n")
    (tmp_path / "package.json").write_text(json.dumps({"compartmap": {"dev": True}}))

    with caplog.at_level(logging.WARNING, logger="compartmap.config"):
        options = load_options(tmp_path)

    assert options.dev is True
    assert CONFIG_FILE_NAME in caplog.text
