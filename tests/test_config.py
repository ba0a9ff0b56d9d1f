"""Tests for .hotpath.yml discovery, loading and validation."""

from __future__ import annotations

import pytest

from hotpath.config import (
    CONFIG_NAME,
    EngineConfig,
    config_from_dict,
    discover_config,
    find_config,
    load_config,
)
from hotpath.exit_codes import EXIT_USAGE, ConfigError
from hotpath.severity import Severity


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoad:
    def test_full_file(self, tmp_path):
        path = _write(
            tmp_path / CONFIG_NAME,
            "hot_fan_in: 5\n"
            "disabled_rules:\n"
            "  - manual-map-append\n"
            "  - chained-map-filter\n"
            "budget_s: 0.5\n"
            "parallel: false\n"
            "min_severity: medium\n"
            "max_findings: 20\n",
        )
        config = load_config(path)
        assert config.hot_fan_in == 5
        assert config.disabled_rules == frozenset({"manual-map-append", "chained-map-filter"})
        assert config.budget_s == 0.5
        assert config.parallel is False
        assert config.min_severity is Severity.MEDIUM
        assert config.max_findings == 20

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(_write(tmp_path / CONFIG_NAME, "")) == EngineConfig()

    def test_single_rule_string_is_accepted(self, tmp_path):
        config = load_config(_write(tmp_path / CONFIG_NAME, "enabled_rules: sort-in-loop\n"))
        assert config.enabled_rules == frozenset({"sort-in-loop"})

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path / CONFIG_NAME, "disabled_rules: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert "not valid YAML" in str(exc_info.value)
        assert exc_info.value.exit_code == EXIT_USAGE

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "nope.yml")


class TestValidation:
    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown key"):
            config_from_dict({"severity_overrides": {"io-in-loop": "Low"}})

    def test_top_level_must_be_a_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            config_from_dict(["hot_fan_in", 3])

    @pytest.mark.parametrize(
        "data",
        [
            {"hot_fan_in": 0},
            {"hot_fan_in": True},
            {"hot_fan_in": "3"},
            {"budget_s": -1},
            {"budget_s": "fast"},
            {"parallel": "yes"},
            {"min_severity": "urgent"},
            {"max_findings": -2},
            {"disabled_rules": [1, 2]},
        ],
    )
    def test_bad_values(self, data):
        with pytest.raises(ConfigError):
            config_from_dict(data)

    def test_none_gives_defaults(self):
        assert config_from_dict(None) == EngineConfig()

    def test_merged_skips_none(self):
        base = EngineConfig(hot_fan_in=4)
        merged = base.merged(min_severity=Severity.HIGH, hot_fan_in=None)
        assert merged.hot_fan_in == 4
        assert merged.min_severity is Severity.HIGH
        assert base.min_severity is Severity.LOW


class TestDiscovery:
    def test_walks_up_from_a_file(self, tmp_path):
        path = _write(tmp_path / CONFIG_NAME, "max_findings: 3\n")
        nested = tmp_path / "src" / "app"
        nested.mkdir(parents=True)
        source = _write(nested / "views.py", "x = 1\n")
        assert find_config(source) == path
        assert discover_config(source).max_findings == 3

    def test_alternate_extension(self, tmp_path):
        path = _write(tmp_path / ".hotpath.yaml", "hot_fan_in: 2\n")
        assert find_config(tmp_path) == path

    def test_defaults_when_nothing_is_found(self, tmp_path, monkeypatch):
        import hotpath.config as config_module

        monkeypatch.setattr(config_module, "find_config", lambda start=".": None)
        assert discover_config(tmp_path) == EngineConfig()
