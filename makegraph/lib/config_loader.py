"""Configuration loading utilities."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

DEFAULT_GLOBALS: Dict[str, Any] = {
    "log_level": "INFO",
    "workdir": ".",
}
RULE_KEYS = {"target", "command", "deps", "force"}


class ConfigError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class ConfigBundle:
    globals: Dict[str, Any]
    rules: List[Dict[str, Any]]


def load_configs(root: Path) -> ConfigBundle:
    config_dir = root / "config"
    globals_path = config_dir / "globals.yaml"
    globals_cfg = _read_yaml(globals_path) if globals_path.exists() else {}
    rules_cfg = _read_yaml(config_dir / "rules.yaml")

    merged = dict(DEFAULT_GLOBALS)
    merged.update(globals_cfg)
    rules = rules_cfg.get("rules") or []
    if not isinstance(rules, list):
        raise ConfigError("rules.yaml: 'rules' must be a list")
    for index, rule in enumerate(rules):
        _validate_rule(index, rule)
    return ConfigBundle(globals=merged, rules=rules)


def _validate_rule(index: int, rule: Any) -> None:
    if not isinstance(rule, dict):
        raise ConfigError(f"Rule {index}: expected a mapping, got {type(rule).__name__}")
    unknown = sorted(set(rule) - RULE_KEYS)
    if unknown:
        raise ConfigError(f"Rule {index}: unknown keys: {', '.join(unknown)}")
    for key in ("target", "command"):
        value = rule.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"Rule {index}: '{key}' must be a non-empty string")
    deps = rule.get("deps", [])
    if not isinstance(deps, list) or not all(isinstance(dep, str) and dep for dep in deps):
        raise ConfigError(f"Rule {index}: 'deps' must be a list of strings")
    if not isinstance(rule.get("force", False), bool):
        raise ConfigError(f"Rule {index}: 'force' must be true or false")


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path.name}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: expected a mapping at the top level")
    return data
