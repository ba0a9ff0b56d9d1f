"""Engine configuration: discovery, loading, validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from hotpath.exit_codes import ConfigError
from hotpath.severity import Severity

log = logging.getLogger(__name__)

CONFIG_NAME = ".hotpath.yml"
_ALT_CONFIG_NAMES = (".hotpath.yaml",)


@dataclass(frozen=True)
class EngineConfig:
    """Tunable engine settings. Severities are not configurable."""

    hot_fan_in: int = 3
    disabled_rules: frozenset[str] = field(default_factory=frozenset)
    enabled_rules: frozenset[str] = field(default_factory=frozenset)
    budget_s: float | None = None
    parallel: bool = True
    min_severity: Severity = Severity.LOW
    max_findings: int = 0

    def merged(self, **overrides: Any) -> "EngineConfig":
        """Copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _as_rule_set(key: str, value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of rule ids")
    return frozenset(value)


def _validate(data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown key(s): {', '.join(unknown)}")

    out: dict[str, Any] = {}
    if "hot_fan_in" in data:
        value = data["hot_fan_in"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ConfigError("hot_fan_in must be a positive integer")
        out["hot_fan_in"] = value
    for key in ("disabled_rules", "enabled_rules"):
        if key in data:
            out[key] = _as_rule_set(key, data[key])
    if "budget_s" in data:
        value = data["budget_s"]
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
            raise ConfigError("budget_s must be a positive number of seconds")
        out["budget_s"] = None if value is None else float(value)
    if "parallel" in data:
        if not isinstance(data["parallel"], bool):
            raise ConfigError("parallel must be true or false")
        out["parallel"] = data["parallel"]
    if "min_severity" in data:
        try:
            out["min_severity"] = Severity.parse(data["min_severity"])
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
    if "max_findings" in data:
        value = data["max_findings"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ConfigError("max_findings must be a non-negative integer")
        out["max_findings"] = value
    return out


def config_from_dict(data: dict[str, Any] | None) -> EngineConfig:
    """Build an :class:`EngineConfig` from a parsed mapping."""
    if data is None:
        return EngineConfig()
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping")
    return EngineConfig(**_validate(data))


def find_config(start: str | Path = ".") -> Path | None:
    """Walk up from *start* looking for a .hotpath.yml file."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    while True:
        for name in (CONFIG_NAME, *_ALT_CONFIG_NAMES):
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config(path: str | Path) -> EngineConfig:
    """Read and validate a YAML config file.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or holds
            unknown keys or bad values.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc.strerror or exc}") from None
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path} is not valid YAML: {exc}") from None
    config = config_from_dict(data)
    log.debug("loaded config from %s", path)
    return config


def discover_config(start: str | Path = ".") -> EngineConfig:
    """Load the nearest .hotpath.yml above *start*, or the defaults."""
    path = find_config(start)
    if path is None:
        log.debug("no %s found above %s; using defaults", CONFIG_NAME, start)
        return EngineConfig()
    return load_config(path)
