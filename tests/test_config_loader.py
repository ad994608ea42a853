"""Tests for makegraph.lib.config_loader."""
from pathlib import Path

import pytest
import yaml

from makegraph.lib.config_loader import ConfigError, load_configs


def _write_yaml(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(data, f)


def test_loads_rules_and_default_globals(tmp_path):
    _write_yaml(tmp_path / "config" / "rules.yaml", {
        "rules": [{"target": "out.txt", "command": "cp in.txt out.txt", "deps": ["in.txt"]}],
    })

    bundle = load_configs(tmp_path)

    assert bundle.globals == {"log_level": "INFO", "workdir": "."}
    assert bundle.rules[0]["target"] == "out.txt"


def test_globals_override_defaults(tmp_path):
    _write_yaml(tmp_path / "config" / "globals.yaml", {"log_level": "DEBUG", "workdir": "build"})
    _write_yaml(tmp_path / "config" / "rules.yaml", {"rules": []})

    bundle = load_configs(tmp_path)

    assert bundle.globals["log_level"] == "DEBUG"
    assert bundle.globals["workdir"] == "build"
    assert bundle.rules == []


def test_missing_rules_file(tmp_path):
    with pytest.raises(ConfigError, match="Config file not found"):
        load_configs(tmp_path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config" / "rules.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("rules: [unclosed\n")

    with pytest.raises(ConfigError, match="invalid YAML"):
        load_configs(tmp_path)


@pytest.mark.parametrize(
    "rule, message",
    [
        ("just a string", "expected a mapping"),
        ({"target": "a", "command": "x", "output": "b"}, "unknown keys: output"),
        ({"command": "x"}, "'target' must be a non-empty string"),
        ({"target": "a"}, "'command' must be a non-empty string"),
        ({"target": "a", "command": "x", "deps": "b"}, "'deps' must be a list of strings"),
        ({"target": "a", "command": "x", "force": "yes"}, "'force' must be true or false"),
    ],
)
def test_invalid_rules(tmp_path, rule, message):
    _write_yaml(tmp_path / "config" / "rules.yaml", {"rules": [rule]})

    with pytest.raises(ConfigError, match=message):
        load_configs(tmp_path)
